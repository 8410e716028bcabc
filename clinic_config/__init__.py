"""
clinic_config -- single public entrypoint for clinic configuration.

Responsibility:
    Provides the ONLY way to obtain lifecycle and ledger configuration at
    runtime through ``get_active_config()``.  Bridges in this package turn
    the returned set into kernel objects; the kernel never imports
    ``clinic_config``.

Invariants enforced:
    - Every returned set has passed ``validate_configuration``.
    - Same YAML document, same checksum.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ConfigurationError`` -- validation failed (all errors listed).

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CLINIC_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each status decision back to the exact configuration
    that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from clinic_config.loader import load_configuration
from clinic_config.schema import ClinicConfigurationSet
from clinic_config.validator import validate_configuration
from clinic_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("clinic_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> ClinicConfigurationSet:
    """
    Load, validate and return the active configuration set.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If validation fails.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_configuration(config_path)

    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"warning": warning})
    if not validation.is_valid:
        raise ConfigurationError(validation.errors)

    _logger.info(
        "CLINIC_CONFIG_TRACE",
        extra={
            "trace_type": "CLINIC_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "kind_count": len(config.kinds),
            "stock_mode": config.inventory.stock_mode,
            "source": str(config_path),
        },
    )
    return config


__all__ = ["ClinicConfigurationSet", "get_active_config", "DEFAULT_CONFIG_PATH"]
