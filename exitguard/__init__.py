from importlib.metadata import PackageNotFoundError, version

from .assertions import expect_exit, no_exit
from .config import ExitGuardConfig
from .exceptions import ExitGuardError, ExpectationError, VerificationError
from .exit_signal import ExitSignal
from .expectations import (
    ExpectationKind,
    ExpectationLookup,
    ExpectationRegistry,
    MarkerLookup,
    TestDescriptor,
)
from .extension import ExitOutcome, ExitVerificationExtension, VerificationState
from .intercept import ExitInterceptor

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("exitguard")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

# Explicit public API
__all__ = [
    # Version
    "__version__",
    # Signal
    "ExitSignal",
    # Verification
    "ExitVerificationExtension",
    "VerificationState",
    "ExitOutcome",
    # Expectations
    "ExpectationKind",
    "ExpectationLookup",
    "ExpectationRegistry",
    "MarkerLookup",
    "TestDescriptor",
    # Interception
    "ExitInterceptor",
    # Assertions
    "expect_exit",
    "no_exit",
    # Config
    "ExitGuardConfig",
    # Exceptions
    "ExitGuardError",
    "ExpectationError",
    "VerificationError",
]
