"""
Policy loader (``tenancy_config.loader``).

Reads a YAML policy file into a ``TenancyPolicy``.  Sections
(``schedule``, ``notices``, ``sweep``, ``tax``) are flattened; unknown keys
are rejected so a typo never silently falls back to a default.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from tenancy_config.schema import TenancyPolicy

SECTIONS = ("schedule", "notices", "sweep", "tax")

_FIELD_NAMES = frozenset(f.name for f in dataclasses.fields(TenancyPolicy))


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def flatten_sections(data: dict[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if key in SECTIONS:
            if not isinstance(value, dict):
                raise ValueError(f"Section {key!r} must be a mapping")
            flat.update(value)
        else:
            flat[key] = value
    unknown = set(flat) - _FIELD_NAMES
    if unknown:
        raise ValueError(f"Unknown policy keys: {', '.join(sorted(unknown))}")
    return flat


def parse_policy(data: dict[str, Any]) -> TenancyPolicy:
    flat = flatten_sections(data)
    for key in ("max_annual_rent_increase", "rent_a_room_allowance"):
        if key in flat:
            flat[key] = Decimal(str(flat[key]))
    return TenancyPolicy(**flat)


def load_policy(path: Path) -> TenancyPolicy:
    return parse_policy(load_yaml_file(Path(path)))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form, for identifying the active policy."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
