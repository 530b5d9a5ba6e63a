"""Pytest configuration and hooks for the harness test suite.

Registers the suite's markers and reports which harness settings the run
starts from, so a failure can be tied to the configuration that produced it.
"""

import pytest  # noqa: F401 - Required by pytest hooks


def pytest_configure(config):
    """
    Register custom markers.

    Args:
        config: pytest config object
    """
    config.addinivalue_line(
        "markers",
        "codegen: tests that compile generated projection programs",
    )
    config.addinivalue_line(
        "markers",
        "scenario: end-to-end harness scenarios across all backends",
    )


def pytest_report_header(config):
    """
    Add custom header to pytest output.

    Args:
        config: pytest config object

    Returns:
        List of header lines
    """
    import os

    from exprcheck.config.settings import CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH

    config_path = os.environ.get(CONFIG_ENV_VAR) or str(DEFAULT_CONFIG_PATH)
    return [
        f"exprcheck config: {config_path}",
        "Set EXPRCHECK_CONFIG to run the suite against other settings",
    ]
