"""
Pytest configuration and shared fixtures.

Every test starts from default harness settings: the settings cache is
cleared and EXPRCHECK_CONFIG is unset around each test.
"""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from exprcheck.config import HarnessSettings
from exprcheck.config import settings as settings_module
from exprcheck.evaluation import ExpressionEvalHarness


@pytest.fixture(autouse=True)
def reset_settings_cache(monkeypatch) -> Generator[None, None, None]:
    """Clear cached settings and the config env var around each test."""
    monkeypatch.delenv(settings_module.CONFIG_ENV_VAR, raising=False)
    settings_module._settings = None
    yield
    settings_module._settings = None


@pytest.fixture
def settings() -> HarnessSettings:
    """Default settings: all backends, fail fast."""
    return HarnessSettings()


@pytest.fixture
def harness(settings) -> ExpressionEvalHarness:
    """Fresh harness with default settings."""
    return ExpressionEvalHarness(settings)


@pytest.fixture
def collecting_harness() -> ExpressionEvalHarness:
    """Harness that keeps running after a failure and collects all of them."""
    return ExpressionEvalHarness(HarnessSettings(fail_fast=False))


@pytest.fixture
def write_config(tmp_path) -> Callable[[str], Path]:
    """Write YAML text to a temporary config file and return its path."""

    def _write(content: str) -> Path:
        path = tmp_path / "harness.yaml"
        path.write_text(content)
        return path

    return _write
