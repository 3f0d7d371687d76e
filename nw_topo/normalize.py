# Copyright 2025 nw-topo contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
"""Normalization utilities."""

from __future__ import annotations

import re
from typing import Any

_NON_HEX = re.compile(r"[^0-9a-f]")
_NON_SLUG = re.compile(r"[^a-z0-9]+")
_DIGIT_RUN = re.compile(r"\d+")

SLUG_MAX_LENGTH = 40


def clean_text(value: Any) -> str | None:
    """Coerce a scalar payload value to stripped text, or None when absent."""

    if value is None or isinstance(value, (bool, dict, list, tuple, set)):
        return None
    text = str(value).strip()
    return text or None


def normalize_mac(raw_mac: Any) -> str:
    """Reduce a hardware address to lower-case hex digits only."""

    text = clean_text(raw_mac)
    if not text:
        return ""
    return _NON_HEX.sub("", text.lower())


def slugify(value: Any, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Lower-case a label and collapse non-alphanumeric runs into hyphens."""

    text = clean_text(value)
    if not text:
        return ""
    slug = _NON_SLUG.sub("-", text.lower()).strip("-")
    return slug[:max_length].strip("-")


def estimate_port_number(raw_port: Any) -> int | None:
    """Return the first run of digits in a port identifier.

    "Port 24" gives 24 and "Gi1/0/2" gives 1. Only the first numeric group
    is considered, so slot/port style identifiers resolve to the slot.
    """

    match = port_digits(raw_port)
    if match is None:
        return None
    return int(match)


def port_digits(raw_port: Any) -> str | None:
    """Return the first digit run of a port identifier as text."""

    text = clean_text(raw_port)
    if not text:
        return None
    match = _DIGIT_RUN.search(text)
    if not match:
        return None
    return match.group(0)
