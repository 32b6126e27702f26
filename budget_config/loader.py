"""
Configuration Loader (``budget_config.loader``).

Responsibility
--------------
Loads YAML configuration documents and parses them into the frozen
``budget_config.schema.EngineSettings`` dataclass.  This is internal
tooling: the single public entry point for runtime config is
``budget_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with descriptive messages; unknown
  keys are rejected rather than silently ignored.
* Decimal settings are parsed from their string form, never via float.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid or unknown values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from budget_config.schema import EngineSettings
from budget_kernel.domain.values import to_decimal

_ENGINE_KEYS = frozenset({
    "currency_decimal_places",
    "reconciliation_tolerance",
    "distribution_tolerance",
    "unassigned_vendor",
    "max_workers",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a loaded YAML document.

    The document holds ``config_id``, ``version`` and an ``engine``
    mapping.  Missing engine keys keep their schema defaults.

    Raises:
        ValueError: on unknown keys or invalid values.
    """
    engine = data.get("engine") or {}
    if not isinstance(engine, dict):
        raise ValueError(f"'engine' must be a mapping, got {type(engine).__name__}")
    unknown = set(engine) - _ENGINE_KEYS
    if unknown:
        raise ValueError(f"Unknown engine settings: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    if "currency_decimal_places" in engine:
        kwargs["currency_decimal_places"] = _parse_int(
            "currency_decimal_places", engine["currency_decimal_places"],
        )
    if "max_workers" in engine:
        kwargs["max_workers"] = _parse_int("max_workers", engine["max_workers"])
    for key in ("reconciliation_tolerance", "distribution_tolerance"):
        if key in engine:
            kwargs[key] = to_decimal(engine[key])
    if "unassigned_vendor" in engine:
        kwargs["unassigned_vendor"] = str(engine["unassigned_vendor"])

    return EngineSettings(
        config_id=str(data.get("config_id", "budget-defaults")),
        version=_parse_int("version", data.get("version", 1)),
        checksum=compute_checksum(data),
        **kwargs,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
