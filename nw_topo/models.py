# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Data models for nw-topo."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from nw_topo.normalize import clean_text

UNKNOWN_VALUE = "unknown"

PROTOCOL_LLDP = "lldp"
PROTOCOL_CDP = "cdp"

NODE_TYPE_EXTERNAL = "external"
NODE_TYPE_APPLIANCE_PORT = "appliance-port"


@dataclass(frozen=True)
class DeviceRecord:
    """Known device supplied by the caller."""

    serial: str
    name: str | None = None
    model: str | None = None
    mac: str | None = None
    status: str | None = None

    @classmethod
    def from_mapping(cls, raw: Any) -> DeviceRecord | None:
        """Build a record from a raw mapping, or None when it has no serial."""

        if isinstance(raw, DeviceRecord):
            return raw
        if not isinstance(raw, Mapping):
            return None
        serial = clean_text(raw.get("serial"))
        if not serial:
            return None
        return cls(
            serial=serial,
            name=clean_text(raw.get("name")),
            model=clean_text(raw.get("model")),
            mac=clean_text(raw.get("mac")),
            status=clean_text(raw.get("status")),
        )


@dataclass(frozen=True)
class Endpoint:
    """Identity descriptors for one side of a neighbor observation."""

    serial: str | None = None
    system_name: str | None = None
    name: str | None = None
    device_id: str | None = None
    chassis_id: str | None = None
    mac: str | None = None
    port_id: str | None = None
    platform: str | None = None
    model: str | None = None

    def display_name(self) -> str | None:
        return self.system_name or self.name or self.device_id


@dataclass(frozen=True)
class NeighborObservation:
    """Directional discovery observation from a local device to a neighbor."""

    protocol: str
    local_port: str | None
    local: Endpoint
    remote: Endpoint
    origin: str = "discovery"


@dataclass(frozen=True)
class EdgeDetail:
    """Per-protocol annotation attached to an edge."""

    protocol: str
    local_port: str | None = None
    remote_port: str | None = None
    remote_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": self.protocol,
            "localPort": self.local_port,
            "remotePort": self.remote_port,
            "remoteName": self.remote_name,
        }


@dataclass
class GraphNode:
    """Graph node for a device, an external neighbor or an appliance port."""

    id: str
    label: str
    type: str
    model: str | None = None
    mac: str | None = None
    status: str | None = None
    switch_port: int | None = None
    switch_port_raw: str | None = None
    connected_to_port: str | None = None
    parent_device: str | None = None
    appliance_serial: str | None = None
    port_number: str | None = None
    record: DeviceRecord | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Render the node as a JSON-ready mapping, omitting absent fields."""

        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "model": self.model,
            "mac": self.mac,
            "status": self.status or UNKNOWN_VALUE,
        }
        optional = (
            ("switchPort", self.switch_port),
            ("switchPortRaw", self.switch_port_raw),
            ("connectedToPort", self.connected_to_port),
            ("parentDevice", self.parent_device),
            ("applianceSerial", self.appliance_serial),
            ("portNumber", self.port_number),
        )
        for key, value in optional:
            if value is not None:
                data[key] = value
        return data


@dataclass
class GraphEdge:
    """Undirected physical link between two nodes."""

    source: str
    target: str
    status: str = UNKNOWN_VALUE
    details: list[EdgeDetail] = field(default_factory=list)

    @property
    def key(self) -> str:
        return edge_key(self.source, self.target)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source": self.source,
            "target": self.target,
            "status": self.status,
        }
        if self.details:
            data["details"] = [detail.to_dict() for detail in self.details]
        return data


@dataclass(frozen=True)
class TopologyResult:
    """Graph together with the input variant it was built from."""

    graph: dict[str, list[dict[str, Any]]]
    source: str


def edge_key(source: str, target: str) -> str:
    """Return the canonical key of an undirected edge."""

    left, right = sorted((source, target))
    return f"{left}--{right}"
