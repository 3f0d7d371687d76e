# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Neighbor identity resolution."""

from __future__ import annotations

import logging
from typing import Callable

from nw_topo.device_index import DeviceIndex
from nw_topo.models import UNKNOWN_VALUE, DeviceRecord, Endpoint
from nw_topo.normalize import normalize_mac, slugify

_LOGGER = logging.getLogger(__name__)

SYNTHETIC_PREFIX = "ext-"
_FALLBACK_SLUG = "neighbor"


def lookup_device(index: DeviceIndex, endpoint: Endpoint) -> DeviceRecord | None:
    """Match an endpoint against the index by serial, then mac, then name."""

    for candidate in (endpoint.serial, endpoint.device_id, endpoint.chassis_id):
        record = index.by_serial(candidate)
        if record is not None:
            return record
    for candidate in (endpoint.mac, endpoint.chassis_id):
        record = index.by_mac(candidate)
        if record is not None:
            return record
    for candidate in (endpoint.system_name, endpoint.name, endpoint.device_id):
        record = index.by_name(candidate)
        if record is not None:
            return record
    return None


class NeighborResolver:
    """Resolve remote endpoints to known devices or run-local synthetic ids.

    A resolver belongs to one reconstruction run. ``is_taken`` reports node
    ids already present in that run so synthetic ids never collide with them.
    """

    def __init__(self, index: DeviceIndex, is_taken: Callable[[str], bool]) -> None:
        self._index = index
        self._is_taken = is_taken
        self._cache: dict[str, str] = {}
        self._allocated: set[str] = set()

    def resolve(
        self,
        endpoint: Endpoint,
        local_serial: str | None = None,
        protocol: str = UNKNOWN_VALUE,
        local_port: str | None = None,
    ) -> tuple[str, bool]:
        """Return ``(node_id, is_new_synthetic)`` for a remote endpoint."""

        record = lookup_device(self._index, endpoint)
        if record is not None:
            return record.serial, False
        key = synthetic_cache_key(endpoint, local_serial, protocol, local_port)
        cached = self._cache.get(key)
        if cached is not None:
            return cached, False
        node_id = self._allocate(synthetic_label(endpoint))
        self._cache[key] = node_id
        _LOGGER.debug("Allocated synthetic node %s for %s", node_id, key)
        return node_id, True

    def _allocate(self, label: str | None) -> str:
        slug = slugify(label) or _FALLBACK_SLUG
        candidate = f"{SYNTHETIC_PREFIX}{slug}"
        suffix = 2
        while candidate in self._allocated or self._is_taken(candidate):
            candidate = f"{SYNTHETIC_PREFIX}{slug}-{suffix}"
            suffix += 1
        self._allocated.add(candidate)
        return candidate


def _identity_fields(endpoint: Endpoint) -> list[str]:
    # serial is last: flat-list neighbors may carry only an unknown serial.
    fields = [
        endpoint.system_name,
        endpoint.name,
        endpoint.device_id,
        endpoint.chassis_id,
        normalize_mac(endpoint.mac),
        endpoint.serial,
    ]
    return [field for field in fields if field]


def synthetic_cache_key(
    endpoint: Endpoint,
    local_serial: str | None,
    protocol: str,
    local_port: str | None,
) -> str:
    """Key under which repeated observations of one neighbor share a node."""

    fields = _identity_fields(endpoint)
    if fields:
        return fields[0].lower()
    if endpoint.port_id:
        return f"port:{endpoint.port_id.lower()}"
    return f"serial:{local_serial or ''}|{protocol or UNKNOWN_VALUE}|{local_port or ''}".lower()


def synthetic_label(endpoint: Endpoint) -> str | None:
    fields = _identity_fields(endpoint)
    if fields:
        return fields[0]
    return endpoint.port_id
