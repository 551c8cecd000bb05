"""
Configuration for the exitguard pytest plugin.

Settings come from ini options (pytest.ini, tox.ini, setup.cfg or the
[tool.pytest.ini_options] table of pyproject.toml) and the matching
command-line flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

INI_ALL_TESTS = "exitguard_all_tests"
INI_TRANSLATE_SYSTEM_EXIT = "exitguard_translate_system_exit"
INI_PATCH_OS_EXIT = "exitguard_patch_os_exit"


@dataclass(frozen=True)
class ExitGuardConfig:
    """
    Immutable plugin configuration.

    Attributes:
        all_tests: Guard every test, not only tests carrying an exit marker
        translate_system_exit: Treat a plain SystemExit leaving the test body
            as an exit attempt
        patch_os_exit: Intercept os._exit as well as sys.exit
    """

    all_tests: bool = False
    translate_system_exit: bool = True
    patch_os_exit: bool = True

    @classmethod
    def from_pytest_config(cls, config: Any) -> ExitGuardConfig:
        """
        Create ExitGuardConfig from a pytest Config.

        The --exitguard-all flag turns all-tests mode on regardless of the
        ini value.

        Args:
            config: pytest Config object

        Returns:
            ExitGuardConfig instance
        """
        all_tests = bool(config.getoption("exitguard_all", False)) or bool(
            config.getini(INI_ALL_TESTS)
        )
        return cls(
            all_tests=all_tests,
            translate_system_exit=bool(config.getini(INI_TRANSLATE_SYSTEM_EXIT)),
            patch_os_exit=bool(config.getini(INI_PATCH_OS_EXIT)),
        )
