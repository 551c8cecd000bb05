"""
Exit interception for code under test.

ExitInterceptor swaps sys.exit and os._exit for functions that raise
ExitSignal, and restores the previous functions when its block ends. The
previous functions are whatever was installed on entry, so interceptors nest.

os._exit would end the process without unwinding, so intercepting it is the
only way to observe it at all. sys.exit already raises SystemExit; replacing
it gives the signal a message naming the call. A SystemExit raised directly
(raise SystemExit(2), exit(), quit()) is translated into an ExitSignal as it
leaves the block.
"""

import logging
import os
import sys
from collections.abc import Callable
from types import TracebackType
from typing import Any, NoReturn

from .exit_signal import ExitSignal

logger = logging.getLogger(__name__)


def _raise_for_sys_exit(arg: Any = None) -> NoReturn:
    raise ExitSignal.from_exit_arg(arg, origin="sys.exit")


def _os_exit_replacement(
    original: Callable[..., Any], owner_pid: int
) -> Callable[[int], NoReturn]:
    """
    Build an os._exit replacement bound to the installing process.

    A child forked while the replacement is active must still terminate, so
    any process other than owner_pid gets the saved original.
    """

    def _raise_for_os_exit(status: int) -> NoReturn:
        if os.getpid() != owner_pid:
            original(status)
        raise ExitSignal(status, f"os._exit({status})")

    return _raise_for_os_exit


class ExitInterceptor:
    """
    Context manager that turns exit attempts into ExitSignal.

    Usage:
        with ExitInterceptor():
            main(["--help"])  # raises ExitSignal(0, "sys.exit(0)")

    Args:
        patch_sys_exit: Replace sys.exit
        patch_os_exit: Replace os._exit
        translate_system_exit: Re-raise a plain SystemExit leaving the block
            as ExitSignal
    """

    def __init__(
        self,
        patch_sys_exit: bool = True,
        patch_os_exit: bool = True,
        translate_system_exit: bool = True,
    ) -> None:
        self._patch_sys_exit = patch_sys_exit
        self._patch_os_exit = patch_os_exit
        self._translate_system_exit = translate_system_exit
        self._original_sys_exit: Callable[..., Any] | None = None
        self._original_os_exit: Callable[..., Any] | None = None
        self._installed = False

    @property
    def installed(self) -> bool:
        """Check if the replacement functions are in place."""
        return self._installed

    def install(self) -> None:
        """Install the replacement exit functions. A second call does nothing."""
        if self._installed:
            return
        if self._patch_sys_exit:
            self._original_sys_exit = sys.exit
            sys.exit = _raise_for_sys_exit
        if self._patch_os_exit:
            self._original_os_exit = os._exit
            os._exit = _os_exit_replacement(self._original_os_exit, os.getpid())
        self._installed = True
        logger.debug(
            "exit interception installed",
            extra={"sys_exit": self._patch_sys_exit, "os_exit": self._patch_os_exit},
        )

    def restore(self) -> None:
        """Put back the exit functions that were in place on install."""
        if self._original_sys_exit is not None:
            sys.exit = self._original_sys_exit
            self._original_sys_exit = None
        if self._original_os_exit is not None:
            os._exit = self._original_os_exit
            self._original_os_exit = None
        self._installed = False
        logger.debug("exit interception restored")

    def __enter__(self) -> "ExitInterceptor":
        self.install()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.restore()
        if (
            self._translate_system_exit
            and isinstance(exc_val, SystemExit)
            and not isinstance(exc_val, ExitSignal)
        ):
            raise ExitSignal.from_system_exit(exc_val) from None
