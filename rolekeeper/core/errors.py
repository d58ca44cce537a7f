"""Error taxonomy for the provisioning workflow.

Only two kinds are fatal and ever reach the CLI:

    ConfigurationError     - halts before any chain call
    PermissionDeniedError  - halts before the first mutating call

Everything else is recovered inside the component that raised it and
shows up as data in the final report.
"""

from __future__ import annotations

from enum import Enum, IntEnum


# ── Exit codes ───────────────────────────────────────────────────────────────


class ExitCode(IntEnum):
    """Process exit classification."""

    OK = 0
    UNEXPECTED = 1
    CONFIGURATION = 3
    PERMISSION_DENIED = 4


class ErrorCode(str, Enum):
    """Stable error codes used in logs and JSON reports."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    REGISTRY_UNAVAILABLE = "REGISTRY_UNAVAILABLE"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"
    READ_FAILED = "READ_FAILED"
    PROBE_FAILED = "PROBE_FAILED"


# ── Base ─────────────────────────────────────────────────────────────────────


class RolekeeperError(Exception):
    """Base class for all rolekeeper errors."""

    code: ErrorCode = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


# ── Fatal ────────────────────────────────────────────────────────────────────


class ConfigurationError(RolekeeperError):
    """Network, address table or registry binding is unusable."""

    code = ErrorCode.CONFIGURATION_ERROR
    exit_code = ExitCode.CONFIGURATION


class RegistryUnavailableError(ConfigurationError):
    """The registry could not be read before any mutation was attempted."""

    code = ErrorCode.REGISTRY_UNAVAILABLE


class PermissionDeniedError(RolekeeperError, PermissionError):
    """The caller does not hold the administrative role."""

    code = ErrorCode.PERMISSION_DENIED
    exit_code = ExitCode.PERMISSION_DENIED


# ── Per-target (recovered locally) ───────────────────────────────────────────


class AddressValidationError(RolekeeperError, ValueError):
    """An identity does not have the expected address format."""

    code = ErrorCode.INVALID_ADDRESS


class TransactionError(RolekeeperError):
    """A ledger call failed: revert, network failure or timeout."""

    code = ErrorCode.TRANSACTION_FAILED

    def __init__(self, message: str, tx_hash: str | None = None, **context: object) -> None:
        super().__init__(message, **context)
        self.tx_hash = tx_hash


class TransactionRevertedError(TransactionError):
    """The transaction was mined with a failure status."""

    code = ErrorCode.TRANSACTION_REVERTED


class ConfirmationTimeoutError(TransactionError, TimeoutError):
    """No confirmation arrived within the configured bound."""

    code = ErrorCode.CONFIRMATION_TIMEOUT


class RegistryReadError(TransactionError):
    """A read-only registry call failed."""

    code = ErrorCode.READ_FAILED


# ── Advisory ─────────────────────────────────────────────────────────────────


class ProbeError(RolekeeperError):
    """The capability probe could not complete."""

    code = ErrorCode.PROBE_FAILED


# ── Programming errors ───────────────────────────────────────────────────────


class ConcurrentSubmissionError(RuntimeError):
    """Two mutations from the same sender overlapped."""
