# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Device list, status map and payload file loading."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from nw_topo.models import DeviceRecord
from nw_topo.normalize import clean_text

_DEVICE_REQUIRED_COLUMNS = ("serial",)
_DEVICE_COLUMNS = ("serial", "name", "model", "mac", "status")


def load_device_inventory(path: str | Path) -> list[DeviceRecord]:
    """Load the known-device list from a CSV or JSON file."""

    path = Path(path)
    if path.suffix.lower() == ".csv":
        return _load_device_csv(path)

    payload = load_json_payload(path)
    if isinstance(payload, dict):
        payload = payload.get("devices")
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of devices")
    devices: list[DeviceRecord] = []
    for position, raw in enumerate(payload):
        record = DeviceRecord.from_mapping(raw)
        if record is None:
            raise ValueError(f"{path} has a device without serial at position {position}")
        devices.append(record)
    return devices


def load_status_map(path: str | Path) -> dict[str, str]:
    """Load a serial -> status mapping.

    Accepts either a JSON object or a list of ``{"serial", "status"}`` entries.
    """

    payload = load_json_payload(path)
    statuses: dict[str, str] = {}
    if isinstance(payload, dict):
        for serial, status in payload.items():
            text = clean_text(status)
            if text:
                statuses[str(serial)] = text
        return statuses
    if isinstance(payload, list):
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            serial = clean_text(entry.get("serial"))
            status = clean_text(entry.get("status"))
            if serial and status:
                statuses[serial] = status
        return statuses
    raise ValueError(f"{path} must contain a status object or list")


def load_json_payload(path: str | Path) -> Any:
    """Read a JSON document, reporting unreadable files as ValueError."""

    try:
        with Path(path).open(encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise ValueError(f"{path} could not be read: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc


def _load_device_csv(path: Path) -> list[DeviceRecord]:
    devices: list[DeviceRecord] = []
    with path.open(encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError(f"{path} is missing header row")
        absent = [name for name in _DEVICE_REQUIRED_COLUMNS if name not in reader.fieldnames]
        if absent:
            raise ValueError(f"{path} is missing required columns: {', '.join(absent)}")
        # Line 1 is the header.
        for line_number, row in enumerate(reader, start=2):
            record = DeviceRecord.from_mapping(
                {column: row.get(column) for column in _DEVICE_COLUMNS}
            )
            if record is None:
                raise ValueError(f"{path} has empty required fields on line {line_number}")
            devices.append(record)
    return devices
