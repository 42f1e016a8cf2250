"""
marketplace_config -- single public entrypoint for marketplace settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  No other component reads settings files
    directly.

Architecture position:
    Configuration.  This package sits above ``marketplace_kernel`` and below
    ``marketplace_services``.  The kernel MUST NEVER import from
    ``marketplace_config``; ``bridges`` translates settings into kernel
    inputs.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or invalid settings.

Every successful ``get_active_config()`` call emits a
``MARKETPLACE_CONFIG_TRACE`` log entry with the config id, version and
checksum, tying each run to the exact settings that governed it.
"""

from __future__ import annotations

from pathlib import Path

from marketplace_config.loader import load_settings
from marketplace_config.schema import MarketplaceSettings
from marketplace_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> MarketplaceSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a settings file.  Defaults to
            marketplace_config/sets/default.yaml.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "MARKETPLACE_CONFIG_TRACE",
        extra={
            "trace_type": "MARKETPLACE_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "require_delivery_before_completion": (
                settings.lifecycle.require_delivery_before_completion
            ),
            "rate_limit_count": len(settings.rate_limits),
        },
    )
    return settings


__all__ = ["get_active_config", "MarketplaceSettings"]
