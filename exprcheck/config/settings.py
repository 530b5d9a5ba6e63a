"""
Harness settings.

Settings are validated with pydantic and loaded from YAML. Lookup order for
the file:

1. The ``path`` argument of load_settings() / reload_settings()
2. The EXPRCHECK_CONFIG environment variable
3. config/harness.yaml at the repository root

A missing file yields the defaults. A malformed file raises
ConfigurationError.

Usage:
    from exprcheck.config import get_settings

    settings = get_settings()
    if settings.fail_fast:
        ...
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from exprcheck.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Default config path
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "harness.yaml"
CONFIG_ENV_VAR = "EXPRCHECK_CONFIG"

# Run order of the backends
KNOWN_BACKENDS = (
    "interpreted",
    "mutable_projection",
    "generated_projection",
    "packed_projection",
    "optimized",
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class HarnessSettings(BaseModel):
    """Validated harness configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    backends: tuple[str, ...] = Field(
        default=KNOWN_BACKENDS, description="Backends to run, in run order"
    )
    fail_fast: bool = Field(default=True, description="Stop at the first failure")
    check_hash_codes: bool = Field(
        default=True, description="Compare generated row hash codes with the expected row"
    )
    check_copy: bool = Field(
        default=True, description="Check that copies of generated rows stay equal"
    )
    optimizer_max_iterations: int = Field(default=100, ge=1)
    default_double_tolerance: float = Field(default=1e-9, ge=0)
    log_level: str = Field(default="WARNING")

    @field_validator("backends")
    @classmethod
    def _known_backends(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [name for name in value if name not in KNOWN_BACKENDS]
        if unknown:
            raise ValueError(
                f"Unknown backends: {', '.join(unknown)}. "
                f"Available: {', '.join(KNOWN_BACKENDS)}"
            )
        if len(set(value)) != len(value):
            raise ValueError("Backends must not repeat")
        return value

    @field_validator("log_level")
    @classmethod
    def _valid_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return level


_settings: HarnessSettings | None = None


def _resolve_path(path: Path | str | None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_settings(path: Path | str | None = None) -> HarnessSettings:
    """Load settings from YAML without touching the cache.

    Args:
        path: Config file (see module docstring for the fallback order).

    Returns:
        HarnessSettings instance.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    config_path = _resolve_path(path)

    if not config_path.exists():
        logger.warning(f"Harness config not found: {config_path}, using defaults")
        return HarnessSettings()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {config_path}: {e}", details={"path": str(config_path)}
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Harness config must be a mapping: {config_path}",
            details={"path": str(config_path)},
        )

    try:
        settings = HarnessSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid harness config {config_path}: {e}",
            details={"path": str(config_path), "errors": e.errors()},
        ) from e

    logger.info(f"Loaded harness settings from {config_path}")
    return settings


def get_settings() -> HarnessSettings:
    """Return the cached settings, loading them on first use."""
    global _settings

    if _settings is None:
        _settings = load_settings()
    return _settings


def reload_settings(path: Path | str | None = None) -> HarnessSettings:
    """Force a reload of the cached settings.

    Args:
        path: Config file (uses the default lookup if None)
    """
    global _settings

    _settings = load_settings(path)
    return _settings
