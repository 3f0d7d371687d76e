# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Output rendering."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any, TextIO

from nw_topo.models import NODE_TYPE_APPLIANCE_PORT, NODE_TYPE_EXTERNAL, TopologyResult


def render_topology_json(result: TopologyResult) -> str:
    """Render a topology result as a JSON document."""

    data = {
        "source": result.source,
        "nodes": result.graph.get("nodes", []),
        "links": result.graph.get("links", []),
    }
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_topology_json(path: str | Path, result: TopologyResult) -> None:
    """Write the topology JSON."""

    with Path(path).open("w", encoding="utf-8") as handle:
        handle.write(render_topology_json(result))


def summarize_topology(graph: dict[str, list[dict[str, Any]]]) -> dict[str, Any]:
    """Count nodes and links of a graph by kind."""

    nodes = graph.get("nodes", [])
    links = graph.get("links", [])
    statuses = Counter(node.get("status") for node in nodes)
    return {
        "nodes": len(nodes),
        "links": len(links),
        "external_nodes": sum(1 for node in nodes if node.get("type") == NODE_TYPE_EXTERNAL),
        "appliance_ports": sum(
            1 for node in nodes if node.get("type") == NODE_TYPE_APPLIANCE_PORT
        ),
        "links_without_details": sum(1 for link in links if "details" not in link),
        "status": dict(sorted(statuses.items())),
    }


def write_summary(handle: TextIO, result: TopologyResult) -> None:
    """Write a plain-text summary report."""

    summary = summarize_topology(result.graph)
    handle.write(f"source: {result.source}\n")
    handle.write(f"nodes: {summary['nodes']}\n")
    handle.write(f"links: {summary['links']}\n")
    handle.write(f"external_nodes: {summary['external_nodes']}\n")
    handle.write(f"appliance_ports: {summary['appliance_ports']}\n")
    handle.write(f"links_without_details: {summary['links_without_details']}\n")
    status_text = ", ".join(f"{key}={value}" for key, value in summary["status"].items())
    handle.write(f"status: {status_text}\n")
