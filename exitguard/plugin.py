"""
Pytest plugin for verifying exit attempts.

The plugin is loaded automatically once exitguard is installed (pytest11
entry point). Without installing, enable it from conftest.py:

    pytest_plugins = ["exitguard.plugin"]

Tests declare what they expect with markers, on the function or on an
enclosing class or module:

    @pytest.mark.expect_exit_with_status(2)
    def test_usage_error():
        main(["--bogus"])

    @pytest.mark.fail_on_exit
    class TestLibraryCalls:
        ...

Only tests carrying one of the markers are guarded, unless all-tests mode is
on (--exitguard-all or exitguard_all_tests = true). A guarded test that exits
without an expectation passes. Settings:

- exitguard_all_tests (bool, default false): guard every test
- exitguard_translate_system_exit (bool, default true): treat a plain
  SystemExit leaving the test body as an exit attempt
- exitguard_patch_os_exit (bool, default true): intercept os._exit too
"""

from collections.abc import Generator
from typing import Any

import pytest

from .config import (
    INI_ALL_TESTS,
    INI_PATCH_OS_EXIT,
    INI_TRANSLATE_SYSTEM_EXIT,
    ExitGuardConfig,
)
from .exceptions import VerificationError
from .expectations import MARKER_DESCRIPTIONS, ExpectationKind, MarkerLookup
from .extension import ExitVerificationExtension
from .intercept import ExitInterceptor

PLUGIN_NAME = "exitguard-session"


# =============================================================================
# Options and Registration
# =============================================================================


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register exitguard command-line and ini options."""
    group = parser.getgroup("exitguard", "exit verification")
    group.addoption(
        "--exitguard-all",
        action="store_true",
        default=False,
        dest="exitguard_all",
        help="Guard every test against exiting, not only tests with exit markers.",
    )
    parser.addini(
        INI_ALL_TESTS,
        type="bool",
        default=False,
        help="Guard every test against exiting, not only tests with exit markers.",
    )
    parser.addini(
        INI_TRANSLATE_SYSTEM_EXIT,
        type="bool",
        default=True,
        help="Count a plain SystemExit leaving a guarded test as an exit attempt.",
    )
    parser.addini(
        INI_PATCH_OS_EXIT,
        type="bool",
        default=True,
        help="Intercept os._exit in guarded tests.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register exit markers and the session plugin."""
    for description in MARKER_DESCRIPTIONS.values():
        config.addinivalue_line("markers", description)

    plugin = ExitGuardPlugin(ExitGuardConfig.from_pytest_config(config))
    config.pluginmanager.register(plugin, PLUGIN_NAME)


# =============================================================================
# Session Plugin
# =============================================================================


class ExitGuardPlugin:
    """
    Drives one ExitVerificationExtension around the call phase of each test.

    A single extension serves the whole session. pytest runs the items of a
    process one after another, and the extension resets itself after every
    invocation, so parametrized repetitions of a test see no state from each
    other.
    """

    def __init__(self, config: ExitGuardConfig) -> None:
        self.config = config
        self.extension = ExitVerificationExtension(MarkerLookup())

    def applies_to(self, item: pytest.Item) -> bool:
        """Check if an item should run under exit verification."""
        if self.config.all_tests:
            return True
        return any(
            item.get_closest_marker(kind.marker_name) is not None
            for kind in ExpectationKind
        )

    def pytest_report_header(self, config: pytest.Config) -> str:
        mode = "all tests" if self.config.all_tests else "marked tests"
        os_exit = "on" if self.config.patch_os_exit else "off"
        return f"exitguard: guarding {mode}, os._exit interception {os_exit}"

    @pytest.hookimpl(wrapper=True)
    def pytest_runtest_call(self, item: pytest.Item) -> Generator[None, Any, Any]:
        if not self.applies_to(item):
            return (yield)

        interceptor = ExitInterceptor(
            patch_os_exit=self.config.patch_os_exit,
            translate_system_exit=self.config.translate_system_exit,
        )
        result = None
        try:
            with self.extension.invocation(item), interceptor:
                result = yield
        except VerificationError as e:
            failure = str(e)
        else:
            return result
        pytest.fail(failure, pytrace=False)
