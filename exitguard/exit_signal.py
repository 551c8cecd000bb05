"""
Exit signal raised in place of a real process exit.

ExitSignal subclasses SystemExit so that code under test sees the same
control flow as a real sys.exit(): `except Exception` handlers do not catch
it, and only an explicit `except SystemExit` or `except BaseException` will.
It never carries a traceback, since exit attempts are expected and frequent
in CLI code and the call stack says nothing useful about them.
"""

from typing import IO, Any


class ExitSignal(SystemExit):
    """
    Immutable record of an attempt to exit with a status code.

    Example:
        >>> signal = ExitSignal(2, "usage error")
        >>> signal.exit_code
        2
        >>> str(signal)
        'Exit code 2: usage error'
    """

    def __init__(self, exit_code: int, message: str) -> None:
        super().__init__(exit_code)
        self._exit_code = exit_code
        self._message = message

    @classmethod
    def from_exit_arg(cls, arg: Any, origin: str = "sys.exit") -> "ExitSignal":
        """
        Build a signal from a sys.exit() style argument.

        None means status 0 and an int is used as the status. Anything else is
        treated the way the interpreter treats it: status 1, with the
        argument text as the message.

        Args:
            arg: Argument passed to the exit function
            origin: Name of the exit function, used in the message

        Returns:
            ExitSignal for the argument
        """
        if arg is None:
            return cls(0, f"{origin}()")
        if isinstance(arg, int):
            return cls(int(arg), f"{origin}({arg!r})")
        return cls(1, str(arg))

    @classmethod
    def from_system_exit(cls, exc: SystemExit) -> "ExitSignal":
        """Build a signal from a SystemExit raised directly by code under test."""
        return cls.from_exit_arg(exc.code, origin="SystemExit")

    @property
    def exit_code(self) -> int:
        return self._exit_code

    @property
    def message(self) -> str:
        return self._message

    @property
    def __traceback__(self) -> None:
        return None

    @__traceback__.setter
    def __traceback__(self, tb: Any) -> None:
        pass

    def with_traceback(self, tb: Any) -> "ExitSignal":
        return self

    def print_trace(self, file: IO[str] | None = None) -> None:
        """
        Write the one-line description to file and flush it.

        Args:
            file: Text sink; nothing happens when None
        """
        if file is None:
            return
        print(self, file=file)
        file.flush()

    def __reduce__(self) -> tuple[type["ExitSignal"], tuple[int, str]]:
        return type(self), (self._exit_code, self._message)

    def __str__(self) -> str:
        return f"Exit code {self._exit_code}: {self._message}"

    def __repr__(self) -> str:
        return f"ExitSignal(exit_code={self._exit_code!r}, message={self._message!r})"
