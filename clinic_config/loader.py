"""
Configuration Loader (``clinic_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``clinic_config.schema`` dataclasses.  Runtime callers go through
``clinic_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; there are no silent defaults
  for ``kinds``, ``policy`` or ``statuses``.
* ``compute_checksum`` is deterministic for equal documents.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from clinic_config.schema import ClinicConfigurationSet, InventoryDef, KindDef

DEFAULT_GRACE_DAYS = 21


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def parse_kind(name: str, data: dict[str, Any]) -> KindDef:
    """Parse one entry of the ``kinds`` mapping."""
    grace = data.get("grace_days")
    return KindDef(
        kind=name,
        policy=str(data["policy"]),
        statuses=_as_tuple(data["statuses"]),
        rejected=data.get("rejected"),
        initial=data.get("initial"),
        terminal=_as_tuple(data.get("terminal")),
        audit_fields={
            str(status): str(field_name)
            for status, field_name in (data.get("audit_fields") or {}).items()
        },
        grace_days=int(grace) if grace is not None else None,
    )


def parse_configuration(data: dict[str, Any]) -> ClinicConfigurationSet:
    """Parse a whole configuration document."""
    kinds = data["kinds"]
    inventory = data.get("inventory") or {}
    return ClinicConfigurationSet(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        grace_days=int(data.get("grace_days", DEFAULT_GRACE_DAYS)),
        kinds=tuple(parse_kind(str(name), body or {}) for name, body in kinds.items()),
        inventory=InventoryDef(stock_mode=str(inventory.get("stock_mode", "clamp"))),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> ClinicConfigurationSet:
    return parse_configuration(load_yaml_file(path))
