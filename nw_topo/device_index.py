# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Lookup tables over the known-device list."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from nw_topo.models import DeviceRecord
from nw_topo.normalize import clean_text, normalize_mac

_LOGGER = logging.getLogger(__name__)


class DeviceIndex:
    """Read-only index of known devices by serial, hardware address and name."""

    def __init__(self, devices: Iterable[Any] = ()) -> None:
        self._by_serial: dict[str, DeviceRecord] = {}
        self._by_mac: dict[str, DeviceRecord] = {}
        self._by_name: dict[str, DeviceRecord] = {}
        for raw in devices or ():
            record = DeviceRecord.from_mapping(raw)
            if record is None:
                _LOGGER.debug("Skipping device without serial: %r", raw)
                continue
            self._by_serial.setdefault(record.serial, record)
            mac = normalize_mac(record.mac)
            if mac:
                self._by_mac.setdefault(mac, record)
            if record.name:
                self._by_name.setdefault(record.name.lower(), record)

    def __len__(self) -> int:
        return len(self._by_serial)

    def __iter__(self) -> Iterator[DeviceRecord]:
        return iter(self._by_serial.values())

    def by_serial(self, serial: Any) -> DeviceRecord | None:
        text = clean_text(serial)
        if not text:
            return None
        return self._by_serial.get(text)

    def by_mac(self, mac: Any) -> DeviceRecord | None:
        normalized = normalize_mac(mac)
        if not normalized:
            return None
        return self._by_mac.get(normalized)

    def by_name(self, name: Any) -> DeviceRecord | None:
        text = clean_text(name)
        if not text:
            return None
        return self._by_name.get(text.lower())
