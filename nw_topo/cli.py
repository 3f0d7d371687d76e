# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from nw_topo.inventory import load_device_inventory, load_json_payload, load_status_map
from nw_topo.output import render_topology_json, write_summary, write_topology_json
from nw_topo.topology import select_topology

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser."""

    parser = argparse.ArgumentParser(description="nw-topo")
    parser.add_argument("--devices", help="path to device list (JSON or CSV)")
    parser.add_argument("--status", help="path to serial -> status JSON")
    parser.add_argument("--link-layer", help="path to link-layer topology JSON")
    parser.add_argument("--discovery", help="path to per-device LLDP/CDP discovery JSON")
    parser.add_argument("--discovery-list", help="path to flat discovery-by-device JSON")
    parser.add_argument("--out", help="output graph JSON path (default: stdout)")
    parser.add_argument(
        "--summary",
        action="store_true",
        help="print a text summary to stderr",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["INFO", "DEBUG", "WARN"],
        help="log level",
    )
    return parser


def configure_logging(level: str) -> None:
    """Configure logging."""

    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(message)s")


def main(argv: Sequence[str] | None = None) -> int:
    """Run nw-topo."""

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if not (args.link_layer or args.discovery or args.discovery_list):
        _LOGGER.error("one of --link-layer, --discovery or --discovery-list is required")
        return 3

    try:
        devices = load_device_inventory(args.devices) if args.devices else []
        status_map = load_status_map(args.status) if args.status else {}
        link_layer = load_json_payload(args.link_layer) if args.link_layer else None
        discovery = load_json_payload(args.discovery) if args.discovery else None
        discovery_list = load_json_payload(args.discovery_list) if args.discovery_list else None
    except ValueError as exc:
        _LOGGER.error("Invalid input: %s", exc)
        return 3

    _LOGGER.info("Loaded %s devices", len(devices))
    result = select_topology(
        devices,
        link_layer=link_layer,
        discovery_by_serial=discovery,
        status_map=status_map,
        discovery_list=discovery_list,
    )
    _LOGGER.info("Topology source: %s", result.source)

    if args.out:
        write_topology_json(args.out, result)
    else:
        sys.stdout.write(render_topology_json(result))
    if args.summary:
        write_summary(sys.stderr, result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
