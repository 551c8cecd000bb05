"""
Expectation discovery for exit verification.

An expectation states whether a test may, must, or must not exit. Three
kinds exist and each is looked up independently:

- DISALLOW_EXIT: any exit attempt fails the test
- EXPECT_EXIT: the test must attempt to exit, with any status
- EXPECT_EXIT_WITH_STATUS: the test must exit with a specific status

Lookups resolve at the test level first and fall back to the containing
group. Two backends are provided: pytest markers (MarkerLookup) and an
explicit registration call (ExpectationRegistry).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .exceptions import ExpectationError


class ExpectationKind(Enum):
    """Expectation kinds, valued by their pytest marker names."""

    DISALLOW_EXIT = "fail_on_exit"
    EXPECT_EXIT = "expect_exit"
    EXPECT_EXIT_WITH_STATUS = "expect_exit_with_status"

    @property
    def marker_name(self) -> str:
        return self.value


MARKER_DESCRIPTIONS: dict[ExpectationKind, str] = {
    ExpectationKind.DISALLOW_EXIT: (
        "fail_on_exit: fail the test if the code under test attempts to exit"
    ),
    ExpectationKind.EXPECT_EXIT: (
        "expect_exit: fail the test unless the code under test attempts to exit"
    ),
    ExpectationKind.EXPECT_EXIT_WITH_STATUS: (
        "expect_exit_with_status(status): fail the test unless the code under "
        "test exits with the given status"
    ),
}


class ExpectationLookup(Protocol):
    """Resolves the configuration value of one expectation kind for a test."""

    def lookup(self, descriptor: Any, kind: ExpectationKind) -> Any | None:
        """
        Return the configured value, or None if the kind is not configured.

        The value is True for the presence kinds and an int status for
        EXPECT_EXIT_WITH_STATUS.
        """
        ...


def _validate_status(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ExpectationError(
            "expect_exit_with_status requires an integer status", status=value
        )
    return value


class MarkerLookup:
    """
    Looks expectations up from pytest markers.

    Uses item.get_closest_marker, which checks the test function first and
    then its enclosing class and module.

    Example:
        @pytest.mark.expect_exit_with_status(2)
        def test_usage_error():
            main(["--bogus"])
    """

    def lookup(self, descriptor: Any, kind: ExpectationKind) -> Any | None:
        marker = descriptor.get_closest_marker(kind.marker_name)
        if marker is None:
            return None
        if kind is not ExpectationKind.EXPECT_EXIT_WITH_STATUS:
            return True
        return self._status_from_marker(marker)

    @staticmethod
    def _status_from_marker(marker: Any) -> int:
        args = list(marker.args)
        kwargs = dict(marker.kwargs)
        if "status" in kwargs:
            args.append(kwargs.pop("status"))
        if len(args) != 1 or kwargs:
            raise ExpectationError(
                "expect_exit_with_status takes exactly one status argument",
                args=marker.args,
                kwargs=marker.kwargs,
            )
        return _validate_status(args[0])


@dataclass(frozen=True)
class TestDescriptor:
    """Identifies a test for ExpectationRegistry lookups."""

    # Keep pytest from collecting this class
    __test__ = False

    name: str
    group: str | None = None


class ExpectationRegistry:
    """
    Expectations configured by explicit registration.

    Entries registered with a test name apply to that test only; entries
    registered with just a group apply to every test in the group that has
    no entry of the same kind of its own.

    Example:
        registry = ExpectationRegistry()
        registry.register(ExpectationKind.DISALLOW_EXIT, group="CliTests")
        registry.register(
            ExpectationKind.EXPECT_EXIT_WITH_STATUS, 2,
            group="CliTests", test="test_usage_error",
        )
    """

    def __init__(self) -> None:
        self._entries: dict[
            tuple[str | None, str | None], dict[ExpectationKind, Any]
        ] = {}

    def register(
        self,
        kind: ExpectationKind,
        value: Any = True,
        *,
        group: str | None = None,
        test: str | None = None,
    ) -> None:
        """
        Register an expectation.

        Args:
            kind: Expectation kind
            value: True for presence kinds, the status for EXPECT_EXIT_WITH_STATUS
            group: Containing group name (None for ungrouped tests)
            test: Test name, or None to apply to the whole group

        Raises:
            ExpectationError: If the status is not an integer
        """
        if kind is ExpectationKind.EXPECT_EXIT_WITH_STATUS:
            value = _validate_status(value)
        self._entries.setdefault((group, test), {})[kind] = value

    def lookup(
        self, descriptor: TestDescriptor, kind: ExpectationKind
    ) -> Any | None:
        for key in ((descriptor.group, descriptor.name), (descriptor.group, None)):
            entries = self._entries.get(key)
            if entries is not None and kind in entries:
                return entries[kind]
        return None
