"""File-based configuration for keyed breakers.

Loads a ``breaker.toml`` file with a ``[breaker]`` table, discovers
the nearest one by walking up from the working directory, and resolves
the effective configuration for CLI commands.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from .breaker_config import DEFAULT_CONFIG, BreakerConfig

logger = logging.getLogger(__name__)

_CONFIG_FILE = "breaker.toml"


def load_breaker_config(config_file: Path) -> BreakerConfig:
    """Load breaker settings from a TOML file.

    Args:
        config_file: Path to the TOML file.

    Returns:
        Parsed BreakerConfig.

    Raises:
        FileNotFoundError: If the file is missing.
        ValueError: On invalid, empty, or corrupt TOML.
    """
    if not config_file.exists():
        msg = f"Breaker config not found: {config_file}"
        raise FileNotFoundError(msg)

    content = config_file.read_text(encoding="utf-8")
    if not content.strip():
        msg = f"Config file is empty: {config_file}"
        raise ValueError(msg)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_file}: {exc}"
        raise ValueError(msg) from exc

    config = _parse_config(data)
    logger.debug("Loaded breaker config from %s: %s", config_file, config)
    return config


def _parse_config(data: dict[str, object]) -> BreakerConfig:
    """Parse raw TOML data into a BreakerConfig.

    Unknown fields are silently ignored for forward compatibility.
    """
    breaker = data.get("breaker", {})
    if not isinstance(breaker, dict):
        msg = "[breaker] section must be a table"
        raise ValueError(msg)

    max_retries = breaker.get("max_retries", DEFAULT_CONFIG.max_retries)
    if isinstance(max_retries, bool) or not isinstance(max_retries, int):
        msg = "breaker.max_retries must be an integer"
        raise ValueError(msg)

    cool_down = breaker.get("cool_down_seconds", DEFAULT_CONFIG.cool_down_seconds)
    if isinstance(cool_down, bool) or not isinstance(cool_down, (int, float)):
        msg = "breaker.cool_down_seconds must be a number"
        raise ValueError(msg)

    config = BreakerConfig(max_retries=max_retries, cool_down_seconds=float(cool_down))
    _validate_config(config)
    return config


def _validate_config(config: BreakerConfig) -> None:
    """Validate BreakerConfig fields.

    Raises:
        ValueError: If any field has an invalid value.
    """
    if config.max_retries < 0:
        msg = f"max_retries must be >= 0, got {config.max_retries}"
        raise ValueError(msg)

    if config.cool_down_seconds < 0:
        msg = f"cool_down_seconds must be >= 0, got {config.cool_down_seconds}"
        raise ValueError(msg)


def find_config_file(start: Path | None = None) -> Path | None:
    """Walk up from start to find the nearest breaker.toml.

    Args:
        start: Starting directory. Defaults to cwd.

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / _CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def resolve_config_for_cli(config_override: str | None = None) -> BreakerConfig:
    """Resolve breaker config for CLI commands with auto-discovery fallback.

    Args:
        config_override: Explicit --config path. If given, skips discovery.

    Returns:
        The loaded config, or DEFAULT_CONFIG when no file is found.

    Raises:
        FileNotFoundError: If config_override points to a missing file.
        ValueError: If the config file is corrupt or invalid.
    """
    if config_override is not None:
        return load_breaker_config(Path(config_override))

    config_file = find_config_file()
    if config_file is None:
        return DEFAULT_CONFIG

    return load_breaker_config(config_file)
