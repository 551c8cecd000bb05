"""
Exception hierarchy for exitguard.

This module provides the errors raised by exitguard itself. The exit signal
raised on behalf of code under test lives in exitguard.exit_signal and is
deliberately not part of this hierarchy: it is the expected channel for an
exit attempt, not a failure.
"""

from typing import Any


class ExitGuardError(Exception):
    """
    Base exception for all exitguard errors.

    Example:
        try:
            extension.before_test(item)
        except ExitGuardError as e:
            lg.error(f"exitguard error: {e}")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ExpectationError(ExitGuardError):
    """
    Invalid expectation configuration.

    Examples:
        - expect_exit_with_status marker without a status
        - Non-integer status code
        - Extra marker arguments
    """

    pass


class VerificationError(ExitGuardError, AssertionError):
    """
    Recorded exit state contradicts the declared expectations.

    The string form is always the bare single-line diagnostic; the expected
    and observed codes are kept in self.context for programmatic access.
    """

    def __str__(self) -> str:
        return self.message
