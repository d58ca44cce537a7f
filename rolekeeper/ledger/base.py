"""Registry interface consumed by the provisioning components.

The ledger client owns signing, RPC transport and nonce management; the
provisioning code only sees the call-level contract below.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, TypeVar, runtime_checkable

from rolekeeper.core.addresses import same_address
from rolekeeper.core.errors import ConfigurationError, RegistryReadError
from rolekeeper.core.types import NetworkProfile, ProbePayload

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Transaction artefacts ────────────────────────────────────────────────────


@dataclass(frozen=True)
class TxHandle:
    """A submitted, not yet confirmed, transaction."""

    tx_hash: str
    description: str = ""


@dataclass(frozen=True)
class LogEntry:
    """One raw log emitted by a mined transaction."""

    address: str
    topics: list[str] = field(default_factory=list)
    data: str = "0x"
    log_index: int = 0


@dataclass(frozen=True)
class TxReceipt:
    """Receipt of a confirmed transaction."""

    tx_hash: str
    status: int = 1
    block_number: int = 0
    gas_used: int = 0
    logs: list[LogEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


# ── Registry protocol ────────────────────────────────────────────────────────


@runtime_checkable
class RegistryClient(Protocol):
    """Call-level contract of the access-controlled registry."""

    registry_address: str

    def sender_address(self) -> str:
        ...

    def role_identifier(self, label: str) -> str:
        ...

    def has_role(self, role_id: str, subject: str) -> bool:
        ...

    def grant_role(self, role_id: str, subject: str) -> TxHandle:
        ...

    def paused(self) -> bool:
        ...

    def unpause(self) -> TxHandle:
        ...

    def exercise_capability(self, payload: ProbePayload) -> TxHandle:
        ...

    def wait_for_receipt(self, tx: TxHandle, timeout: float) -> TxReceipt:
        """Block until ``tx`` is confirmed.

        Raises ConfirmationTimeoutError after ``timeout`` seconds and
        TransactionRevertedError if the transaction failed on-chain.
        """
        ...

    def event_topic(self, signature: str) -> str:
        ...


def ensure_bound(client: RegistryClient, profile: NetworkProfile) -> None:
    """Refuse to operate when the client targets a different registry."""
    if not same_address(client.registry_address, profile.registry_address):
        raise ConfigurationError(
            f"Registry client is bound to {client.registry_address}, "
            f"but network {profile.name} resolves to {profile.registry_address}",
            network=profile.name,
        )


# ── Read retries ─────────────────────────────────────────────────────────────

_TRANSIENT_MESSAGES = (
    "connection reset",
    "connection refused",
    "timed out",
    "timeout",
    "temporarily unavailable",
    "service unavailable",
    "too many requests",
    "rate limit",
    "502",
    "503",
    "504",
)


def is_transient(exc: Exception) -> bool:
    """Return True if the exception looks like a transient RPC failure."""
    msg = str(exc).lower()
    return any(t in msg for t in _TRANSIENT_MESSAGES)


def retry_read(
    fn: Callable[[], T],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 15.0,
    label: str = "read",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Retry a read-only call with exponential back-off on transient errors.

    Never wrap a mutation in this: resubmitting a transaction consumes a
    fresh nonce and can double-apply.
    """
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except RegistryReadError as exc:
            if attempt >= max_retries or not is_transient(exc):
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(
                "Transient error in %s (attempt %d/%d), retrying in %.1fs: %s",
                label, attempt + 1, max_retries, delay, exc,
            )
            sleep(delay)
    raise AssertionError("unreachable")
