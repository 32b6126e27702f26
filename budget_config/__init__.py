"""
budget_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.  Returns a frozen ``EngineSettings``.

Architecture position:
    Configuration -- sits above ``budget_kernel`` and below
    ``budget_services``.  Engines never import from ``budget_config``;
    services hand them the individual settings they need.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic identity: the same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``BUDGET_CONFIG_TRACE`` log entry containing the config_id, version
    and checksum, tying every calculation run back to the settings that
    governed its rounding and tolerances.
"""

from __future__ import annotations

import logging
from pathlib import Path

from budget_config.loader import compute_checksum, load_yaml_file, parse_settings
from budget_config.schema import EngineSettings

_logger = logging.getLogger("budget_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> EngineSettings:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override YAML file.  Defaults to the packaged defaults.yaml.

    Returns:
        Frozen EngineSettings.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the configuration is invalid.
    """
    config_file = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    settings = parse_settings(load_yaml_file(config_file))

    _logger.info(
        "BUDGET_CONFIG_TRACE",
        extra={
            "trace_type": "BUDGET_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "currency_decimal_places": settings.currency_decimal_places,
            "max_workers": settings.max_workers,
            "source": str(config_file),
        },
    )
    return settings


__all__ = [
    "EngineSettings",
    "compute_checksum",
    "get_active_config",
    "load_yaml_file",
    "parse_settings",
]
