# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Topology reconstruction from neighbor observations."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from nw_topo.device_class import is_appliance_model, node_type_for_model
from nw_topo.device_index import DeviceIndex
from nw_topo.models import (
    NODE_TYPE_APPLIANCE_PORT,
    NODE_TYPE_EXTERNAL,
    UNKNOWN_VALUE,
    DeviceRecord,
    EdgeDetail,
    Endpoint,
    GraphEdge,
    GraphNode,
    NeighborObservation,
    TopologyResult,
    edge_key,
)
from nw_topo.normalize import clean_text, estimate_port_number, port_digits
from nw_topo.observations import (
    ORIGIN_DISCOVERY_LIST,
    ORIGIN_LINK_LAYER,
    link_layer_nodes,
    observations_from_discovery,
    observations_from_discovery_list,
    observations_from_link_layer,
)
from nw_topo.resolver import NeighborResolver, lookup_device

_LOGGER = logging.getLogger(__name__)

SOURCE_LINK_LAYER = "link-layer"
SOURCE_LLDP_FALLBACK = "lldp-fallback"
SOURCE_DISCOVERY_LIST = "discovery-list"
SOURCE_EMPTY = "empty"


class ReconstructionContext:
    """Run-scoped state for one topology reconstruction.

    Holds the device index, the node and edge registries and the synthetic id
    allocator. A context must not be shared between concurrent runs.
    """

    def __init__(
        self,
        devices: Iterable[Any] = (),
        status_map: Mapping[str, Any] | None = None,
    ) -> None:
        self.index = DeviceIndex(devices)
        self._status_map: Mapping[str, Any] = status_map or {}
        self._nodes: dict[str, GraphNode] = {}
        self._edges: dict[str, GraphEdge] = {}
        self.resolver = NeighborResolver(self.index, self._nodes.__contains__)

    @property
    def nodes(self) -> dict[str, GraphNode]:
        return self._nodes

    @property
    def edges(self) -> dict[str, GraphEdge]:
        return self._edges

    def seed_devices(self) -> None:
        """Add every known device as a node, linked or not."""

        for record in self.index:
            self._device_node(record.serial, record, None)

    def seed_endpoint(self, endpoint: Endpoint) -> str | None:
        """Add a node for a device descriptor and return its id."""

        anchor = self._resolve_anchor(endpoint)
        if anchor is None:
            return None
        node_id, record = anchor
        return self._device_node(node_id, record, endpoint).id

    def add_observations(self, observations: Iterable[NeighborObservation]) -> None:
        for observation in observations:
            self.add_observation(observation)

    def add_observation(self, observation: NeighborObservation) -> GraphEdge | None:
        """Apply one observation, returning the edge it contributed to."""

        anchor = self._resolve_anchor(observation.local)
        if anchor is None:
            _LOGGER.debug("Dropping observation without local identity: %s", observation)
            return None
        local_id, local_record = anchor
        remote_anchor = self._remote_anchor(observation)
        if remote_anchor is None:
            return None
        remote_id, remote_record = remote_anchor
        if remote_id == local_id:
            _LOGGER.debug("Dropping self-referencing observation on %s", local_id)
            return None

        # Paired links name the port on both ends, so either end may be an appliance port.
        link_layer = observation.origin == ORIGIN_LINK_LAYER
        source = self._device_node(
            local_id,
            local_record,
            observation.local,
            observation.local_port if link_layer else None,
        )
        target = self._remote_node(observation, remote_id, remote_record)

        detail = None
        if observation.origin != ORIGIN_DISCOVERY_LIST:
            detail = EdgeDetail(
                protocol=observation.protocol,
                local_port=observation.local_port,
                remote_port=observation.remote.port_id,
                remote_name=observation.remote.display_name(),
            )
        edge = self.register_edge(source.id, target.id, detail)
        if edge is None:
            return None
        if observation.local_port and source.type != NODE_TYPE_APPLIANCE_PORT:
            self.assign_switch_port(target, observation.local_port, source.label)
        return edge

    def register_edge(
        self,
        source: str,
        target: str,
        detail: EdgeDetail | None = None,
    ) -> GraphEdge | None:
        """Create or extend the undirected edge between two nodes."""

        if not source or not target or source == target:
            return None
        key = edge_key(source, target)
        edge = self._edges.get(key)
        if edge is None:
            edge = GraphEdge(source=source, target=target)
            self._edges[key] = edge
        if detail is not None:
            edge.details.append(detail)
        return edge

    @staticmethod
    def assign_switch_port(node: GraphNode, raw_port: str, parent: str | None = None) -> bool:
        """Record the upstream port a node attaches to; the first assignment wins."""

        if node.switch_port is not None:
            return False
        port = estimate_port_number(raw_port)
        if port is None:
            return False
        node.switch_port = port
        node.switch_port_raw = raw_port
        node.connected_to_port = raw_port
        node.parent_device = parent
        return True

    def assemble(self) -> dict[str, list[dict[str, Any]]]:
        """Render the registries as a ``{"nodes": [...], "links": [...]}`` graph."""

        nodes = []
        for node in self._nodes.values():
            node.status = self._status_for(node)
            nodes.append(node.to_dict())
        links = [edge.to_dict() for edge in self._edges.values()]
        _LOGGER.info("Built topology with %s nodes and %s links", len(nodes), len(links))
        return {"nodes": nodes, "links": links}

    def _status_for(self, node: GraphNode) -> str:
        """Status from the map, then the record, then ``unknown``.

        Appliance-port nodes rarely appear in a status map under their own id,
        so the owning appliance's serial is tried before the record status.
        """

        for key in (node.id, node.appliance_serial):
            if key:
                status = clean_text(self._status_map.get(key))
                if status:
                    return status
        if node.record is not None and node.record.status:
            return node.record.status
        return UNKNOWN_VALUE

    def _resolve_anchor(self, endpoint: Endpoint) -> tuple[str, DeviceRecord | None] | None:
        if endpoint.serial:
            return endpoint.serial, self.index.by_serial(endpoint.serial)
        record = lookup_device(self.index, endpoint)
        if record is not None:
            return record.serial, record
        for raw_id in (
            endpoint.mac,
            endpoint.chassis_id,
            endpoint.system_name,
            endpoint.name,
            endpoint.device_id,
        ):
            if raw_id:
                return raw_id, None
        return None

    def _remote_anchor(
        self, observation: NeighborObservation
    ) -> tuple[str, DeviceRecord | None] | None:
        if observation.origin == ORIGIN_LINK_LAYER:
            return self._resolve_anchor(observation.remote)
        node_id, _ = self.resolver.resolve(
            observation.remote,
            local_serial=observation.local.serial,
            protocol=observation.protocol,
            local_port=observation.local_port,
        )
        return node_id, self.index.by_serial(node_id)

    def _remote_node(
        self,
        observation: NeighborObservation,
        node_id: str,
        record: DeviceRecord | None,
    ) -> GraphNode:
        remote = observation.remote
        if observation.origin == ORIGIN_LINK_LAYER:
            return self._device_node(node_id, record, remote, remote.port_id)
        if record is not None:
            return self._device_node(node_id, record, None, remote.port_id)
        node = self._nodes.get(node_id)
        if node is None:
            node = GraphNode(
                id=node_id,
                label=remote.display_name() or "Neighbor",
                type=NODE_TYPE_EXTERNAL,
                model=remote.platform or remote.model,
                mac=remote.mac,
            )
            self._nodes[node_id] = node
        return node

    def _device_node(
        self,
        node_id: str,
        record: DeviceRecord | None,
        endpoint: Endpoint | None,
        port: str | None = None,
    ) -> GraphNode:
        """Return the node for a device, or its per-port node for appliances."""

        node = self._nodes.get(node_id)
        if node is None:
            endpoint = endpoint or Endpoint()
            name = (record.name if record else None) or endpoint.name or endpoint.system_name
            model = (record.model if record else None) or endpoint.model
            mac = (record.mac if record else None) or endpoint.mac
            node = GraphNode(
                id=node_id,
                label=name or model or node_id,
                type=node_type_for_model(model),
                model=model,
                mac=mac,
                record=record,
            )
        if port and is_appliance_model(node.model):
            return self._appliance_port_node(node, port)
        self._nodes.setdefault(node_id, node)
        return node

    def _appliance_port_node(self, appliance: GraphNode, port: str) -> GraphNode:
        # One node per appliance port keeps parallel links into the appliance apart.
        port_number = port_digits(port) or port
        port_id = f"{appliance.id}-port-{port_number}"
        node = self._nodes.get(port_id)
        if node is None:
            name = appliance.record.name if appliance.record else None
            node = GraphNode(
                id=port_id,
                label=f"{name or appliance.model} Port {port_number}",
                type=NODE_TYPE_APPLIANCE_PORT,
                model=appliance.model,
                appliance_serial=appliance.id,
                port_number=port_number,
                record=appliance.record,
            )
            self._nodes[port_id] = node
        return node


def build_from_link_layer(
    topology: Any,
    devices: Iterable[Any] = (),
    status_map: Mapping[str, Any] | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Build a graph from a paired-link topology."""

    return build_topology(devices, status_map, link_layer=topology)


def build_from_discovery(
    devices: Iterable[Any],
    discovery_by_serial: Any,
    status_map: Mapping[str, Any] | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Build a graph from per-device LLDP/CDP payloads, keeping unlinked devices."""

    return build_topology(
        devices,
        status_map,
        discovery_by_serial=discovery_by_serial,
        include_isolated_devices=True,
    )


def build_from_discovery_list(
    entries: Any,
    devices: Iterable[Any] = (),
    status_map: Mapping[str, Any] | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Build a graph without port detail from a flat discovery list."""

    return build_topology(devices, status_map, discovery_list=entries)


def build_topology(
    devices: Iterable[Any] = (),
    status_map: Mapping[str, Any] | None = None,
    *,
    link_layer: Any = None,
    discovery_by_serial: Any = None,
    discovery_list: Any = None,
    include_isolated_devices: bool = False,
) -> dict[str, list[dict[str, Any]]]:
    """Reconstruct one graph from any combination of discovery inputs.

    Inputs are applied in a fixed order (link-layer, per-device discovery,
    flat list) so first-writer-wins port assignments are reproducible.
    """

    context = ReconstructionContext(devices, status_map)
    if include_isolated_devices:
        context.seed_devices()
    if link_layer is not None:
        for endpoint in link_layer_nodes(link_layer):
            context.seed_endpoint(endpoint)
        context.add_observations(observations_from_link_layer(link_layer))
    if discovery_by_serial is not None:
        if isinstance(discovery_by_serial, Mapping):
            for serial in discovery_by_serial:
                text = clean_text(serial)
                if text:
                    context.seed_endpoint(Endpoint(serial=text))
        context.add_observations(observations_from_discovery(discovery_by_serial))
    if discovery_list is not None:
        context.add_observations(observations_from_discovery_list(discovery_list))
    return context.assemble()


def select_topology(
    devices: Iterable[Any],
    link_layer: Any = None,
    discovery_by_serial: Any = None,
    status_map: Mapping[str, Any] | None = None,
    discovery_list: Any = None,
) -> TopologyResult:
    """Pick the best graph the available inputs support.

    The link-layer topology wins when it has more than one node and at least
    one link. Otherwise the per-device discovery payloads are used, then the
    flat discovery list, which carries no port detail.
    """

    devices = list(devices or ())
    if link_layer is not None:
        graph = build_from_link_layer(link_layer, devices, status_map)
        if len(graph["nodes"]) > 1 and graph["links"]:
            return TopologyResult(graph=graph, source=SOURCE_LINK_LAYER)
        _LOGGER.info("Link-layer topology incomplete, rebuilding from discovery payloads")
    if discovery_by_serial:
        graph = build_from_discovery(devices, discovery_by_serial, status_map)
        if graph["nodes"] or graph["links"]:
            return TopologyResult(graph=graph, source=SOURCE_LLDP_FALLBACK)
    if discovery_list:
        graph = build_from_discovery_list(discovery_list, devices, status_map)
        if graph["links"]:
            return TopologyResult(graph=graph, source=SOURCE_DISCOVERY_LIST)
    return TopologyResult(graph={"nodes": [], "links": []}, source=SOURCE_EMPTY)
