# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Flatten the discovery payload shapes into neighbor observations.

Three payload shapes are accepted:

* link-layer topology: ``{"nodes": [...], "links": [{"ends": [end, end]}]}``
  where each end carries a ``device`` descriptor and a ``discovered``
  LLDP/CDP port id;
* discovery by serial: ``{serial: {"ports"|"interfaces"|"entries"|"neighbors": ...}}``
  with per-port records holding nested ``lldp``/``cdp`` sub-records;
* flat discovery list: ``[{"serial": ..., "neighbors": [...]}]`` without
  port detail.

Malformed records are skipped one at a time; nothing here raises on bad input.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Mapping

from nw_topo.models import (
    PROTOCOL_CDP,
    PROTOCOL_LLDP,
    UNKNOWN_VALUE,
    Endpoint,
    NeighborObservation,
)
from nw_topo.normalize import clean_text

_LOGGER = logging.getLogger(__name__)

ORIGIN_LINK_LAYER = "link-layer"
ORIGIN_DISCOVERY = "discovery"
ORIGIN_DISCOVERY_LIST = "discovery-list"

_PROTOCOLS = (PROTOCOL_LLDP, PROTOCOL_CDP)
_RECORD_COLLECTIONS = ("ports", "interfaces", "entries", "neighbors")
_NEIGHBOR_COLLECTIONS = ("neighbors", "neighbours", "adjacents")
_REMOTE_IDENTITY_FIELDS = ("serial", "system_name", "device_id", "chassis_id", "mac")


def _first(raw: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = clean_text(raw.get(key))
        if value:
            return value
    return None


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def normalize_protocol(raw: Any) -> str:
    """Map a protocol label onto lldp, cdp or unknown."""

    text = clean_text(raw)
    if text and text.lower() in _PROTOCOLS:
        return text.lower()
    return UNKNOWN_VALUE


def endpoint_from_device(raw: Any) -> Endpoint | None:
    """Build an endpoint from a device descriptor (link-layer ends and nodes)."""

    device = _as_mapping(raw)
    if device is None:
        return None
    endpoint = Endpoint(
        serial=_first(device, "serial"),
        name=_first(device, "name"),
        mac=_first(device, "mac"),
        model=_first(device, "model"),
    )
    if not (endpoint.serial or endpoint.mac or endpoint.name):
        return None
    return endpoint


def endpoint_from_neighbor(raw: Mapping[str, Any]) -> Endpoint:
    """Build a remote endpoint from an LLDP/CDP neighbor sub-record."""

    return Endpoint(
        serial=_first(raw, "serial", "neighborSerial"),
        system_name=_first(raw, "systemName"),
        name=_first(raw, "name", "neighborName"),
        device_id=_first(raw, "deviceId"),
        chassis_id=_first(raw, "chassisId"),
        mac=_first(raw, "mac", "macAddress", "neighborMac"),
        port_id=_first(raw, "portId", "port"),
        platform=_first(raw, "platform"),
        model=_first(raw, "model"),
    )


def has_remote_identity(endpoint: Endpoint) -> bool:
    return any(getattr(endpoint, name) for name in _REMOTE_IDENTITY_FIELDS)


def link_layer_nodes(topology: Any) -> list[Endpoint]:
    """Return the explicit node descriptors of a link-layer topology."""

    data = _as_mapping(topology)
    if data is None:
        return []
    endpoints = []
    for raw in _as_list(data.get("nodes")):
        endpoint = endpoint_from_device(raw)
        if endpoint is not None and endpoint.serial:
            endpoints.append(endpoint)
    return endpoints


def _discovered_port(end: Mapping[str, Any]) -> tuple[str, str | None]:
    discovered = _as_mapping(end.get("discovered")) or {}
    for protocol in _PROTOCOLS:
        sub = _as_mapping(discovered.get(protocol))
        if sub is not None:
            port = _first(sub, "portId")
            if port:
                return protocol, port
    node = _as_mapping(end.get("node")) or {}
    return UNKNOWN_VALUE, _first(node, "portId")


def observations_from_link_layer(topology: Any) -> list[NeighborObservation]:
    """Emit two observations per link, one from each end."""

    data = _as_mapping(topology)
    if data is None:
        return []
    observations: list[NeighborObservation] = []
    for index, link in enumerate(_as_list(data.get("links"))):
        ends = _as_list(link.get("ends")) if isinstance(link, Mapping) else []
        if len(ends) < 2 or not all(isinstance(end, Mapping) for end in ends[:2]):
            _LOGGER.debug("Skipping link %s without two ends", index)
            continue
        first, second = ends[0], ends[1]
        first_device = endpoint_from_device(first.get("device"))
        second_device = endpoint_from_device(second.get("device"))
        if first_device is None or second_device is None:
            _LOGGER.debug("Skipping link %s with a missing device descriptor", index)
            continue
        first_protocol, first_port = _discovered_port(first)
        second_protocol, second_port = _discovered_port(second)
        observations.append(
            NeighborObservation(
                protocol=first_protocol,
                local_port=first_port,
                local=first_device,
                remote=_with_port(second_device, second_port),
                origin=ORIGIN_LINK_LAYER,
            )
        )
        observations.append(
            NeighborObservation(
                protocol=second_protocol,
                local_port=second_port,
                local=second_device,
                remote=_with_port(first_device, first_port),
                origin=ORIGIN_LINK_LAYER,
            )
        )
    return observations


def _with_port(endpoint: Endpoint, port: str | None) -> Endpoint:
    return Endpoint(
        serial=endpoint.serial,
        name=endpoint.name,
        mac=endpoint.mac,
        model=endpoint.model,
        port_id=port,
    )


def _iter_port_records(payload: Mapping[str, Any]) -> Iterator[tuple[str | None, Any]]:
    for key in _RECORD_COLLECTIONS:
        collection = payload.get(key)
        if isinstance(collection, Mapping):
            for port_name, record in collection.items():
                yield clean_text(port_name), record
        else:
            for record in _as_list(collection):
                yield None, record


def observations_from_discovery(discovery_by_serial: Any) -> list[NeighborObservation]:
    """Flatten a serial -> discovery payload mapping."""

    data = _as_mapping(discovery_by_serial)
    if data is None:
        return []
    observations: list[NeighborObservation] = []
    for raw_serial, payload in data.items():
        serial = clean_text(raw_serial)
        payload_map = _as_mapping(payload)
        if not serial or payload_map is None:
            continue
        local = Endpoint(serial=serial)
        for port_name, record in _iter_port_records(payload_map):
            if not isinstance(record, Mapping):
                continue
            observations.extend(_record_observations(local, port_name, record))
    return observations


def _record_observations(
    local: Endpoint,
    port_name: str | None,
    record: Mapping[str, Any],
) -> list[NeighborObservation]:
    local_port = _first(record, "portId", "port", "interfaceId", "name") or port_name
    observations = []
    for protocol in _PROTOCOLS:
        sub = _as_mapping(record.get(protocol))
        if sub is None:
            continue
        observations.append(
            NeighborObservation(
                protocol=protocol,
                local_port=local_port or _first(sub, "sourcePort"),
                local=local,
                remote=endpoint_from_neighbor(sub),
                origin=ORIGIN_DISCOVERY,
            )
        )
    if observations:
        return observations

    remote = Endpoint(
        serial=_first(record, "serial", "neighborSerial"),
        system_name=_first(record, "systemName"),
        device_id=_first(record, "deviceId"),
        chassis_id=_first(record, "chassisId"),
        mac=_first(record, "mac", "macAddress", "neighborMac"),
        port_id=_first(record, "remotePortId", "remotePort", "neighborPort"),
        platform=_first(record, "platform"),
        model=_first(record, "model"),
    )
    if not has_remote_identity(remote):
        _LOGGER.debug("Skipping record on %s/%s without remote identity", local.serial, local_port)
        return []
    return [
        NeighborObservation(
            protocol=normalize_protocol(record.get("protocol")),
            local_port=local_port,
            local=local,
            remote=remote,
            origin=ORIGIN_DISCOVERY,
        )
    ]


def _list_identity(raw: Mapping[str, Any]) -> Endpoint:
    nested = _as_mapping(raw.get("device")) or {}
    return Endpoint(
        serial=_first(raw, "serial", "deviceSerial", "neighborSerial") or _first(nested, "serial"),
        mac=_first(raw, "mac", "deviceMac", "neighborMac") or _first(nested, "mac"),
        chassis_id=_first(raw, "chassisId"),
        system_name=_first(raw, "systemName"),
        name=_first(raw, "name") or _first(nested, "name"),
        device_id=_first(raw, "id", "deviceId") or _first(nested, "id"),
        model=_first(raw, "model") or _first(nested, "model"),
    )


def observations_from_discovery_list(entries: Any) -> list[NeighborObservation]:
    """Flatten a list of device/neighbor pairs that carry no port detail."""

    observations: list[NeighborObservation] = []
    for entry in _as_list(entries):
        if not isinstance(entry, Mapping):
            continue
        local = _list_identity(entry)
        if not (has_remote_identity(local) or local.name):
            _LOGGER.debug("Skipping discovery entry without identity")
            continue
        neighbors: list[Any] = []
        for key in _NEIGHBOR_COLLECTIONS:
            neighbors = _as_list(entry.get(key))
            if neighbors:
                break
        for raw in neighbors:
            if not isinstance(raw, Mapping):
                continue
            remote = _list_identity(raw)
            if not (has_remote_identity(remote) or remote.name):
                continue
            observations.append(
                NeighborObservation(
                    protocol=normalize_protocol(raw.get("protocol")),
                    local_port=None,
                    local=local,
                    remote=remote,
                    origin=ORIGIN_DISCOVERY_LIST,
                )
            )
    return observations
