"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the exitguard test suite.
"""

import os
import sys
from collections.abc import Callable, Generator

import pytest

# =============================================================================
# Plugin Registration
# =============================================================================

# pytester drives nested pytest sessions for the plugin integration tests
pytest_plugins = ["pytester"]


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (run nested pytest sessions)"
    )
    config.addinivalue_line("markers", "property: Property-based tests")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def exit_functions() -> Generator[tuple[Callable, Callable], None, None]:
    """
    Capture sys.exit and os._exit as they are when the test starts.

    Restores them afterwards, so a test that leaves an interceptor installed
    cannot end the test process for the tests that follow.

    Yields:
        tuple: (sys.exit, os._exit) at test start
    """
    original_sys_exit = sys.exit
    original_os_exit = os._exit
    yield original_sys_exit, original_os_exit
    sys.exit = original_sys_exit
    os._exit = original_os_exit


@pytest.fixture
def run_guarded(pytester: pytest.Pytester) -> Callable[..., pytest.RunResult]:
    """
    Run a nested pytest session with the exitguard plugin loaded from source.

    The installed entry point is blocked so the plugin is registered exactly
    once whether or not the package is installed.

    Args:
        pytester: Pytester fixture

    Returns:
        function: Accepts extra pytest arguments, returns the RunResult
    """

    def run(*args: str) -> pytest.RunResult:
        return pytester.runpytest(
            "-p", "no:exitguard", "-p", "exitguard.plugin", *args
        )

    return run


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Add the 'unit' marker to tests without another category marker.

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    for item in items:
        if not any(
            mark.name in ["integration", "property"] for mark in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
