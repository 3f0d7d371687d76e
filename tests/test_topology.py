# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Tests for topology reconstruction."""

import json

from nw_topo.models import GraphNode
from nw_topo.topology import (
    SOURCE_DISCOVERY_LIST,
    SOURCE_EMPTY,
    SOURCE_LINK_LAYER,
    SOURCE_LLDP_FALLBACK,
    ReconstructionContext,
    build_from_discovery,
    build_from_discovery_list,
    build_from_link_layer,
    build_topology,
    select_topology,
)

SWITCHES = [
    {"serial": "Q2SW-0001", "name": "sw1", "model": "MS120-8", "status": "online"},
    {"serial": "Q2SW-0002", "name": "sw2", "model": "MS225-24", "status": "offline"},
]
APPLIANCE = {"serial": "Q2MX-0001", "name": "fw", "model": "MX67"}


def _nodes(graph: dict) -> dict[str, dict]:
    return {node["id"]: node for node in graph["nodes"]}


def _link(first: str, first_port: str, second: str, second_port: str) -> dict:
    return {
        "ends": [
            {"device": {"serial": first}, "discovered": {"lldp": {"portId": first_port}}},
            {"device": {"serial": second}, "discovered": {"lldp": {"portId": second_port}}},
        ]
    }


def test_empty_input_gives_empty_graph() -> None:
    assert build_topology() == {"nodes": [], "links": []}
    assert build_from_link_layer({"links": []}) == {"nodes": [], "links": []}
    assert build_from_discovery([], {}) == {"nodes": [], "links": []}
    assert build_from_discovery_list([]) == {"nodes": [], "links": []}


def test_link_layer_switch_to_appliance_port() -> None:
    devices = [
        {"serial": "S1", "model": "MS1", "mac": "aa:bb:cc:00:00:01"},
        {"serial": "S2", "model": "MX1", "mac": "aa:bb:cc:00:00:02"},
    ]
    topology = {"links": [_link("S1", "Port 24", "S2", "Port 2")]}

    graph = build_from_link_layer(topology, devices)

    nodes = _nodes(graph)
    assert set(nodes) == {"S1", "S2-port-2"}
    assert "switchPort" not in nodes["S1"]
    port_node = nodes["S2-port-2"]
    assert port_node["type"] == "appliance-port"
    assert port_node["portNumber"] == "2"
    assert port_node["applianceSerial"] == "S2"
    assert port_node["switchPort"] == 24
    assert len(graph["links"]) == 1
    link = graph["links"][0]
    assert {link["source"], link["target"]} == {"S1", "S2-port-2"}
    assert len(link["details"]) == 2


def test_link_layer_seeds_nodes_and_drops_self_links() -> None:
    topology = {
        "nodes": [{"serial": "Q2SW-0001", "name": "sw1", "model": "MS120-8"}],
        "links": [
            _link("Q2SW-0001", "1", "Q2SW-0001", "2"),
            {"ends": [{"device": {"serial": "Q2SW-0001"}}, {"discovered": {}}]},
        ],
    }

    graph = build_from_link_layer(topology)

    assert [node["id"] for node in graph["nodes"]] == ["Q2SW-0001"]
    assert graph["nodes"][0]["type"] == "ms"
    assert graph["links"] == []


def test_bidirectional_observations_merge_into_one_edge() -> None:
    discovery = {
        "Q2SW-0001": {
            "ports": [{"portId": "5", "lldp": {"systemName": "sw2", "portId": "Port 10"}}]
        },
        "Q2SW-0002": {
            "ports": [{"portId": "10", "lldp": {"systemName": "sw1", "portId": "Port 5"}}]
        },
    }

    graph = build_from_discovery(SWITCHES, discovery)

    assert len(graph["links"]) == 1
    link = graph["links"][0]
    assert (link["source"], link["target"]) == ("Q2SW-0001", "Q2SW-0002")
    assert link["status"] == "unknown"
    assert [detail["localPort"] for detail in link["details"]] == ["5", "10"]
    nodes = _nodes(graph)
    assert nodes["Q2SW-0002"]["switchPort"] == 5
    assert nodes["Q2SW-0002"]["parentDevice"] == "sw1"
    assert nodes["Q2SW-0001"]["switchPort"] == 10


def test_first_switch_port_assignment_wins() -> None:
    discovery = {
        "Q2SW-0001": {"ports": [{"portId": "3", "lldp": {"systemName": "ap-lobby"}}]},
        "Q2SW-0002": {"ports": [{"portId": "7", "lldp": {"systemName": "AP-Lobby"}}]},
    }

    graph = build_from_discovery(SWITCHES, discovery)

    node = _nodes(graph)["ext-ap-lobby"]
    assert node["type"] == "external"
    assert node["switchPort"] == 3
    assert node["switchPortRaw"] == "3"
    assert node["connectedToPort"] == "3"
    assert len(graph["links"]) == 2


def test_unresolved_neighbors_get_distinct_synthetic_ids() -> None:
    discovery = {
        "Q2SW-0001": {
            "ports": [
                {"portId": "1", "lldp": {"systemName": "Cam A"}},
                {"portId": "2", "lldp": {"systemName": "cam_a"}},
                {"portId": "3", "cdp": {"deviceId": "Phone 1", "platform": "CP-8845"}},
            ]
        }
    }

    graph = build_from_discovery(SWITCHES, discovery)

    nodes = _nodes(graph)
    assert {"ext-cam-a", "ext-cam-a-2", "ext-phone-1"} <= set(nodes)
    assert nodes["ext-phone-1"]["model"] == "CP-8845"
    assert nodes["ext-phone-1"]["label"] == "Phone 1"


def test_appliance_links_keep_one_node_per_port() -> None:
    discovery = {
        "Q2SW-0001": {
            "ports": [
                {"portId": "1", "lldp": {"systemName": "fw", "portId": "Port 2"}},
                {"portId": "2", "lldp": {"systemName": "fw", "portId": "Port 3"}},
                {"portId": "8", "cdp": {"deviceId": "fw", "portId": "wan"}},
            ]
        }
    }

    graph = build_from_discovery(SWITCHES + [APPLIANCE], discovery)

    nodes = _nodes(graph)
    assert nodes["Q2MX-0001-port-2"]["portNumber"] == "2"
    assert nodes["Q2MX-0001-port-3"]["applianceSerial"] == "Q2MX-0001"
    assert nodes["Q2MX-0001-port-3"]["label"] == "fw Port 3"
    assert nodes["Q2MX-0001-port-wan"]["portNumber"] == "wan"
    targets = sorted(link["target"] for link in graph["links"])
    assert targets == ["Q2MX-0001-port-2", "Q2MX-0001-port-3", "Q2MX-0001-port-wan"]


def test_appliance_without_remote_port_links_to_device() -> None:
    discovery = {"Q2SW-0001": {"ports": [{"portId": "1", "lldp": {"systemName": "fw"}}]}}

    graph = build_from_discovery(SWITCHES + [APPLIANCE], discovery)

    assert graph["links"][0]["target"] == "Q2MX-0001"
    assert _nodes(graph)["Q2MX-0001"]["switchPort"] == 1


def test_self_referencing_observation_adds_no_edge() -> None:
    discovery = {"Q2SW-0001": {"ports": [{"portId": "1", "lldp": {"systemName": "sw1"}}]}}

    graph = build_from_discovery(SWITCHES, discovery)

    assert graph["links"] == []
    assert "switchPort" not in _nodes(graph)["Q2SW-0001"]


def test_status_fallback_chain() -> None:
    discovery = {
        "Q2SW-0001": {
            "ports": [
                {"portId": "1", "lldp": {"systemName": "printer"}},
                {"portId": "2", "lldp": {"systemName": "fw", "portId": "Port 4"}},
            ]
        }
    }
    status_map = {"Q2SW-0001": "alerting", "Q2MX-0001": "online"}

    graph = build_from_discovery(SWITCHES + [APPLIANCE], discovery, status_map)

    nodes = _nodes(graph)
    assert nodes["Q2SW-0001"]["status"] == "alerting"
    assert nodes["Q2SW-0002"]["status"] == "offline"
    assert nodes["ext-printer"]["status"] == "unknown"
    assert nodes["Q2MX-0001-port-4"]["status"] == "online"


def test_discovery_seeds_unknown_reporting_serials() -> None:
    graph = build_from_discovery([], {"Q2XX-9999": {"neighbors": [{"portId": "1"}]}})

    assert graph == {
        "nodes": [
            {
                "id": "Q2XX-9999",
                "label": "Q2XX-9999",
                "type": "device",
                "model": None,
                "mac": None,
                "status": "unknown",
            }
        ],
        "links": [],
    }


def test_discovery_list_edges_omit_details() -> None:
    devices = SWITCHES + [{"serial": "Q2SW-0003", "mac": "aa:bb:cc:00:00:03"}]
    entries = [
        {
            "serial": "Q2SW-0001",
            "neighbors": [{"mac": "AA-BB-CC-00-00-03"}, {"name": "printer"}],
        }
    ]

    graph = build_from_discovery_list(entries, devices)

    assert [(link["source"], link["target"]) for link in graph["links"]] == [
        ("Q2SW-0001", "Q2SW-0003"),
        ("Q2SW-0001", "ext-printer"),
    ]
    assert all("details" not in link for link in graph["links"])


def test_reconstruction_is_deterministic() -> None:
    discovery = {
        "Q2SW-0001": {
            "ports": [
                {"portId": "1", "lldp": {"systemName": "Cam A"}},
                {"portId": "2", "lldp": {"systemName": "fw", "portId": "Port 2"}},
            ]
        },
        "Q2SW-0002": {"neighbors": [{"portId": "4", "deviceId": "Cam A"}]},
    }
    devices = SWITCHES + [APPLIANCE]

    first = build_from_discovery(devices, discovery)
    second = build_from_discovery(devices, discovery)

    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


def test_assign_switch_port_keeps_first_value() -> None:
    node = GraphNode(id="n1", label="n1", type="external")

    assert ReconstructionContext.assign_switch_port(node, "Port 12", "sw1")
    assert not ReconstructionContext.assign_switch_port(node, "Port 14", "sw2")
    assert not ReconstructionContext.assign_switch_port(
        GraphNode(id="n2", label="n2", type="external"), "uplink"
    )
    assert node.switch_port == 12
    assert node.parent_device == "sw1"


def test_register_edge_merges_and_rejects_self_loops() -> None:
    context = ReconstructionContext()

    first = context.register_edge("b", "a")
    second = context.register_edge("a", "b")

    assert first is second
    assert first.key == "a--b"
    assert context.register_edge("a", "a") is None
    assert list(context.edges) == ["a--b"]
    assert context.assemble()["links"] == [{"source": "b", "target": "a", "status": "unknown"}]


def test_select_topology_prefers_link_layer() -> None:
    topology = {"links": [_link("Q2SW-0001", "1", "Q2SW-0002", "2")]}

    result = select_topology(SWITCHES, link_layer=topology, discovery_by_serial={"x": {}})

    assert result.source == SOURCE_LINK_LAYER
    assert len(result.graph["links"]) == 1


def test_select_topology_falls_back_to_discovery() -> None:
    discovery = {"Q2SW-0001": {"ports": [{"portId": "5", "lldp": {"systemName": "sw2"}}]}}

    result = select_topology(SWITCHES, link_layer={"links": []}, discovery_by_serial=discovery)

    assert result.source == SOURCE_LLDP_FALLBACK
    assert len(result.graph["links"]) == 1


def test_select_topology_uses_flat_list_last() -> None:
    entries = [{"serial": "Q2SW-0001", "neighbors": [{"serial": "Q2SW-0002"}]}]

    result = select_topology(SWITCHES, discovery_list=entries)
    empty = select_topology([])

    assert result.source == SOURCE_DISCOVERY_LIST
    assert empty.source == SOURCE_EMPTY
    assert empty.graph == {"nodes": [], "links": []}


def test_appliance_reporter_links_from_its_device_node() -> None:
    discovery = {
        "Q2MX-0001": {
            "ports": [{"portId": "Port 3", "lldp": {"systemName": "sw1", "portId": "Port 24"}}]
        }
    }

    graph = build_from_discovery([APPLIANCE, SWITCHES[0]], discovery)

    nodes = _nodes(graph)
    assert set(nodes) == {"Q2MX-0001", "Q2SW-0001"}
    assert [(link["source"], link["target"]) for link in graph["links"]] == [
        ("Q2MX-0001", "Q2SW-0001")
    ]
    assert nodes["Q2SW-0001"]["switchPort"] == 3
    assert nodes["Q2SW-0001"]["parentDevice"] == "fw"


def test_link_layer_drops_links_between_ports_of_one_appliance() -> None:
    topology = {
        "nodes": [APPLIANCE],
        "links": [_link("Q2MX-0001", "Port 1", "Q2MX-0001", "Port 2")],
    }

    graph = build_from_link_layer(topology, [APPLIANCE])

    assert graph["links"] == []
    assert [node["id"] for node in graph["nodes"]] == ["Q2MX-0001"]
