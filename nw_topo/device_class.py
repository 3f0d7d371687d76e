# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Device class lookup by model prefix."""

from __future__ import annotations

import re

DEVICE_CLASS_APPLIANCE = "appliance"
DEVICE_CLASS_SWITCH = "switch"
DEVICE_CLASS_WIRELESS = "wireless"
DEVICE_CLASS_CAMERA = "camera"
DEVICE_CLASS_SENSOR = "sensor"
DEVICE_CLASS_CELLULAR = "cellular"

_MODEL_CLASS_MAP: tuple[tuple[str, str], ...] = (
    (r"^mx", DEVICE_CLASS_APPLIANCE),
    (r"^z\d", DEVICE_CLASS_APPLIANCE),
    (r"^utm", DEVICE_CLASS_APPLIANCE),
    (r"^ms", DEVICE_CLASS_SWITCH),
    (r"^mr", DEVICE_CLASS_WIRELESS),
    (r"^cw", DEVICE_CLASS_WIRELESS),
    (r"^mv", DEVICE_CLASS_CAMERA),
    (r"^mt", DEVICE_CLASS_SENSOR),
    (r"^mg", DEVICE_CLASS_CELLULAR),
)


def classify_model(model: str | None) -> str | None:
    """Return the device class for a model string, or None when unknown."""

    if not model:
        return None
    lowered = model.strip().lower()
    for pattern, device_class in _MODEL_CLASS_MAP:
        if re.match(pattern, lowered):
            return device_class
    return None


def is_appliance_model(model: str | None) -> bool:
    """Whether the model belongs to a security/gateway appliance family."""

    return classify_model(model) == DEVICE_CLASS_APPLIANCE


def node_type_for_model(model: str | None, default: str = "device") -> str:
    """Two-letter model prefix used as the node type."""

    if not model:
        return default
    return model.strip()[:2].lower() or default
