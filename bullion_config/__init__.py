"""
bullion_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned ``EngineConfig``
    and never read configuration files or environment variables directly.

Architecture position:
    Configuration.  Sits beside ``bullion_kernel``; the kernel consumes the
    frozen ``EngineConfig`` dataclass and never imports the loader.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``KeyError`` / ``ValueError`` -- missing keys or malformed values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``BULLION_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying posted registry rows to the configuration in force.
"""

from __future__ import annotations

import logging
from pathlib import Path

from bullion_config.loader import load_yaml_file, parse_engine_config
from bullion_config.schema import EngineConfig, FixingIdPrefixes, LedgerAccounts

__all__ = [
    "get_active_config",
    "EngineConfig",
    "LedgerAccounts",
    "FixingIdPrefixes",
]

_logger = logging.getLogger("bullion_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    config_dir: Path | None = None,
    name: str = "default",
) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to bullion_config/sets/.
        name: Configuration set name; ``<name>.yaml`` is loaded.

    Returns:
        Frozen EngineConfig.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        KeyError: If required keys are missing.
        ValueError: If a value cannot be parsed.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = parse_engine_config(load_yaml_file(path))

    _logger.info(
        "BULLION_CONFIG_TRACE",
        extra={
            "trace_type": "BULLION_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "base_currency": config.base_currency,
        },
    )

    return config
