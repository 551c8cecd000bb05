"""
Exit assertions usable inside a test body.

These work without the marker machinery, in the style of pytest.raises:

    from exitguard import expect_exit, no_exit

    def test_usage_error():
        with expect_exit(2) as outcome:
            main(["--bogus"])
        assert "usage" in outcome.signal.message

    def test_dry_run_does_not_exit():
        with no_exit():
            main(["--dry-run"])

Each block runs through its own ExitVerificationExtension, so a failed
expectation raises VerificationError (an AssertionError) at the end of the
block.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from .expectations import ExpectationKind, ExpectationRegistry, TestDescriptor
from .extension import ExitOutcome, ExitVerificationExtension
from .intercept import ExitInterceptor


@contextmanager
def _guarded(
    name: str,
    kind: ExpectationKind,
    value: Any,
    patch_os_exit: bool,
    translate_system_exit: bool,
) -> Generator[ExitOutcome, None, None]:
    descriptor = TestDescriptor(name)
    registry = ExpectationRegistry()
    registry.register(kind, value, test=name)
    extension = ExitVerificationExtension(registry)
    interceptor = ExitInterceptor(
        patch_os_exit=patch_os_exit, translate_system_exit=translate_system_exit
    )
    with extension.invocation(descriptor) as outcome, interceptor:
        yield outcome


@contextmanager
def expect_exit(
    status: int | None = None,
    *,
    patch_os_exit: bool = True,
    translate_system_exit: bool = True,
) -> Generator[ExitOutcome, None, None]:
    """
    Assert that the block attempts to exit.

    Args:
        status: Required exit status, or None to accept any status
        patch_os_exit: Intercept os._exit as well as sys.exit
        translate_system_exit: Count a plain SystemExit as an exit attempt

    Yields:
        ExitOutcome describing the exit once the block has finished

    Raises:
        VerificationError: If the block does not exit, or exits with
            another status
        ExpectationError: If status is not an integer
    """
    if status is None:
        kind, value = ExpectationKind.EXPECT_EXIT, True
    else:
        kind, value = ExpectationKind.EXPECT_EXIT_WITH_STATUS, status
    with _guarded(
        "expect_exit", kind, value, patch_os_exit, translate_system_exit
    ) as outcome:
        yield outcome


@contextmanager
def no_exit(
    *,
    patch_os_exit: bool = True,
    translate_system_exit: bool = True,
) -> Generator[ExitOutcome, None, None]:
    """
    Assert that the block does not attempt to exit.

    Raises:
        VerificationError: If the block attempts to exit
    """
    with _guarded(
        "no_exit",
        ExpectationKind.DISALLOW_EXIT,
        True,
        patch_os_exit,
        translate_system_exit,
    ) as outcome:
        yield outcome
