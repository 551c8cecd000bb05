"""
Exit verification state machine.

ExitVerificationExtension coordinates one test invocation at a time through
three hooks the host runner calls in a fixed order:

    before_test  ->  test body  ->  [handle_test_exception]  ->  after_test

before_test arms the expectations found for the test, handle_test_exception
records an ExitSignal raised by the body (and re-raises anything else), and
after_test verifies what was recorded and then resets the state. The reset
runs on every path out of after_test, so one instance can serve any number of
sequential invocations, such as the repetitions of a parametrized test.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any

from .exceptions import VerificationError
from .exit_signal import ExitSignal
from .expectations import ExpectationKind, ExpectationLookup

logger = logging.getLogger(__name__)


@dataclass
class VerificationState:
    """Per-invocation verification state; all fields cleared while idle."""

    fail_on_exit: bool = False
    expect_exit: bool = False
    expected_status_code: int | None = None
    exit_observed: bool = False
    observed_status_code: int | None = None

    def reset(self) -> None:
        self.fail_on_exit = False
        self.expect_exit = False
        self.expected_status_code = None
        self.exit_observed = False
        self.observed_status_code = None

    def is_idle(self) -> bool:
        return self == VerificationState()


@dataclass
class ExitOutcome:
    """What happened during one invocation, filled in when an exit is caught."""

    exited: bool = False
    exit_code: int | None = None
    signal: ExitSignal | None = None


def _describe(descriptor: Any) -> str:
    return str(getattr(descriptor, "nodeid", None) or descriptor)


class ExitVerificationExtension:
    """
    Verifies exit expectations for test invocations.

    One instance must not be shared by invocations running concurrently.
    Sequential reuse is safe.

    Example:
        extension = ExitVerificationExtension(MarkerLookup())

        with extension.invocation(item) as outcome:
            item.runtest()
    """

    def __init__(self, lookup: ExpectationLookup) -> None:
        """
        Initialize the extension.

        Args:
            lookup: Source of the expectations configured for each test
        """
        self._lookup = lookup
        self._state = VerificationState()

    @property
    def state(self) -> VerificationState:
        """Snapshot of the current state."""
        return replace(self._state)

    def before_test(self, descriptor: Any) -> None:
        """
        Arm the expectations configured for a test.

        Args:
            descriptor: Test descriptor understood by the lookup

        Raises:
            ExpectationError: If the configured expectations are invalid
        """
        disallow = self._lookup.lookup(descriptor, ExpectationKind.DISALLOW_EXIT)
        expect = self._lookup.lookup(descriptor, ExpectationKind.EXPECT_EXIT)
        status = self._lookup.lookup(
            descriptor, ExpectationKind.EXPECT_EXIT_WITH_STATUS
        )

        state = self._state
        if not state.is_idle():
            logger.warning(
                "stale exit verification state, resetting",
                extra={"test": _describe(descriptor), "state": replace(state)},
            )
            state.reset()

        state.fail_on_exit = disallow is not None
        if expect is not None:
            state.expect_exit = True
        if status is not None:
            state.expect_exit = True
            state.expected_status_code = status

        logger.debug(
            "exit verification armed",
            extra={
                "test": _describe(descriptor),
                "fail_on_exit": state.fail_on_exit,
                "expect_exit": state.expect_exit,
                "expected_status_code": state.expected_status_code,
            },
        )

    def handle_test_exception(self, descriptor: Any, thrown: BaseException) -> None:
        """
        Record an exit signal raised by the test body.

        Args:
            descriptor: Test descriptor
            thrown: Exception raised by the test body

        Raises:
            BaseException: thrown itself, unchanged, if it is not an ExitSignal
        """
        if not isinstance(thrown, ExitSignal):
            raise thrown

        self._state.exit_observed = True
        self._state.observed_status_code = thrown.exit_code
        logger.debug(
            "exit intercepted",
            extra={"test": _describe(descriptor), "exit_code": thrown.exit_code},
        )

    def after_test(self, descriptor: Any) -> None:
        """
        Verify the recorded state against the armed expectations, then reset.

        Args:
            descriptor: Test descriptor

        Raises:
            VerificationError: If the recorded state contradicts an expectation
        """
        state = self._state
        try:
            if state.fail_on_exit and state.exit_observed:
                raise VerificationError(
                    f"Unexpected exit({state.observed_status_code}) caught",
                    observed=state.observed_status_code,
                )

            if (
                state.expect_exit
                and state.expected_status_code is None
                and not state.exit_observed
            ):
                raise VerificationError("Expected exit() to be called, but it was not")

            if (
                state.expect_exit
                and state.expected_status_code is not None
                and not state.exit_observed
            ):
                raise VerificationError(
                    f"Expected exit({state.expected_status_code}) to be called, "
                    "but it was not.",
                    expected=state.expected_status_code,
                )

            if (
                state.expect_exit
                and state.expected_status_code is not None
                and state.exit_observed
                and state.observed_status_code is not None
                and state.observed_status_code != state.expected_status_code
            ):
                raise VerificationError(
                    f"Expected exit({state.expected_status_code}) to be called, "
                    f"but exit({state.observed_status_code}) was called",
                    expected=state.expected_status_code,
                    observed=state.observed_status_code,
                )

            logger.debug(
                "exit verification passed",
                extra={
                    "test": _describe(descriptor),
                    "exit_observed": state.exit_observed,
                    "observed_status_code": state.observed_status_code,
                },
            )
        finally:
            state.reset()

    @contextmanager
    def invocation(self, descriptor: Any) -> Generator[ExitOutcome, None, None]:
        """
        Run one invocation through all three hooks.

        An ExitSignal raised inside the block is recorded and suppressed;
        anything else propagates unchanged. If something else does propagate,
        the state is still reset and any verification failure is only logged,
        so the original error is what the caller sees.

        Args:
            descriptor: Test descriptor

        Yields:
            ExitOutcome filled in if the block exits

        Raises:
            VerificationError: If the expectations are not met
        """
        outcome = ExitOutcome()
        self.before_test(descriptor)
        try:
            yield outcome
        except BaseException as thrown:
            try:
                self.handle_test_exception(descriptor, thrown)
            except BaseException:
                self._abandon(descriptor)
                raise
            outcome.exited = True
            outcome.exit_code = thrown.exit_code
            outcome.signal = thrown
        self.after_test(descriptor)

    def _abandon(self, descriptor: Any) -> None:
        try:
            self.after_test(descriptor)
        except VerificationError as e:
            logger.warning(
                "exit verification failed after an unrelated error",
                extra={"test": _describe(descriptor), "error": str(e)},
            )
