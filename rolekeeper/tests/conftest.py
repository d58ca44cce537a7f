"""Shared fixtures for the rolekeeper test suite."""

from __future__ import annotations

from typing import Any

import pytest

from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.errors import RegistryReadError, TransactionError
from rolekeeper.core.types import NetworkProfile, ProbePayload, RoleDefinition
from rolekeeper.ledger.base import LogEntry, TxHandle, TxReceipt

REGISTRY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
CALLER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ADMIN_ID = "0x" + "a" * 64
MINTER_ID = "0x" + "b" * 64
EVENT_TOPIC = "0x" + "c" * 64

ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"
CAROL = "0x3333333333333333333333333333333333333333"


# ── Fake registry ────────────────────────────────────────────────────────────


class FakeRegistry:
    """In-memory registry recording every call made against it.

    Mutations only take effect once their receipt is awaited, mirroring a
    real ledger where state changes at confirmation.
    """

    def __init__(self, registry_address: str = REGISTRY, caller: str = CALLER) -> None:
        self.registry_address = registry_address
        self.caller = caller
        self.roles = {"ADMIN": ADMIN_ID, "MINTER": MINTER_ID}
        self.members: dict[str, set[str]] = {ADMIN_ID: {caller.lower()}, MINTER_ID: {caller.lower()}}
        self.is_paused = False
        self.emit_event = True
        self.calls: list[tuple[Any, ...]] = []

        # failure injection, keyed by lower-case subject address
        self.submit_errors: dict[str, Exception] = {}
        self.receipt_errors: dict[str, Exception] = {}
        self.read_errors: dict[str, Exception] = {}
        self.unpause_error: Exception | None = None
        self.capability_error: Exception | None = None
        self.capability_receipt_error: Exception | None = None

        self._effects: dict[str, Any] = {}
        self._failures: dict[str, Exception] = {}
        self._logs: dict[str, list[LogEntry]] = {}
        self._nonce = 0
        self.next_certificate_id = 1

    # ── helpers ──────────────────────────────────────────────────────────

    def _next_tx(self, description: str) -> TxHandle:
        self._nonce += 1
        return TxHandle(tx_hash="0x" + f"{self._nonce:064x}", description=description)

    def grant_calls(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == "grant_role"]

    def mutating_calls(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] in ("grant_role", "unpause", "exercise_capability")]

    def calls_for(self, subject: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if len(c) > 2 and str(c[2]).lower() == subject.lower()]

    # ── RegistryClient ───────────────────────────────────────────────────

    def sender_address(self) -> str:
        self.calls.append(("sender_address",))
        return self.caller

    def role_identifier(self, label: str) -> str:
        self.calls.append(("role_identifier", label))
        try:
            return self.roles[label.upper()]
        except KeyError:
            raise RegistryReadError(f"cast call failed: {label}_ROLE() reverted") from None

    def has_role(self, role_id: str, subject: str) -> bool:
        self.calls.append(("has_role", role_id, subject))
        if subject.lower() in self.read_errors:
            raise self.read_errors[subject.lower()]
        return subject.lower() in self.members.get(role_id, set())

    def grant_role(self, role_id: str, subject: str) -> TxHandle:
        self.calls.append(("grant_role", role_id, subject))
        if subject.lower() in self.submit_errors:
            raise self.submit_errors[subject.lower()]
        tx = self._next_tx("grantRole")
        if subject.lower() in self.receipt_errors:
            self._failures[tx.tx_hash] = self.receipt_errors[subject.lower()]
        else:
            self._effects[tx.tx_hash] = lambda: self.members.setdefault(role_id, set()).add(subject.lower())
        return tx

    def paused(self) -> bool:
        self.calls.append(("paused",))
        return self.is_paused

    def unpause(self) -> TxHandle:
        self.calls.append(("unpause",))
        if self.unpause_error is not None:
            raise self.unpause_error
        tx = self._next_tx("unpause")
        self._effects[tx.tx_hash] = lambda: setattr(self, "is_paused", False)
        return tx

    def exercise_capability(self, payload: ProbePayload) -> TxHandle:
        self.calls.append(("exercise_capability", payload))
        if self.capability_error is not None:
            raise self.capability_error
        if self.is_paused:
            raise TransactionError("cast send failed: execution reverted: EnforcedPause()")
        if self.caller.lower() not in self.members.get(MINTER_ID, set()):
            raise TransactionError(
                "cast send failed: execution reverted: AccessControlUnauthorizedAccount"
            )
        tx = self._next_tx("mintCertificate")
        if self.capability_receipt_error is not None:
            self._failures[tx.tx_hash] = self.capability_receipt_error
        elif self.emit_event:
            cert_id = self.next_certificate_id
            self.next_certificate_id += 1
            self._logs[tx.tx_hash] = [
                LogEntry(
                    address=self.registry_address,
                    topics=[
                        EVENT_TOPIC,
                        "0x" + f"{cert_id:064x}",
                        "0x" + payload.subject[2:].lower().rjust(64, "0"),
                    ],
                    data="0x",
                    log_index=0,
                )
            ]
        return tx

    def wait_for_receipt(self, tx: TxHandle, timeout: float) -> TxReceipt:
        self.calls.append(("wait_for_receipt", tx.tx_hash, timeout))
        if tx.tx_hash in self._failures:
            raise self._failures.pop(tx.tx_hash)
        effect = self._effects.pop(tx.tx_hash, None)
        if effect is not None:
            effect()
        return TxReceipt(
            tx_hash=tx.tx_hash,
            status=1,
            block_number=100 + self._nonce,
            logs=self._logs.pop(tx.tx_hash, []),
        )

    def event_topic(self, signature: str) -> str:
        self.calls.append(("event_topic", signature))
        return EVENT_TOPIC


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        registry_local=REGISTRY,
        private_key="0x" + "1" * 64,
        confirmations=1,
        tx_timeout_seconds=30,
        read_retry_base_delay=0.0,
        authorized_minters="",
        admin_wallets="",
    )


@pytest.fixture
def profile() -> NetworkProfile:
    return NetworkProfile(
        name="local",
        registry_address=REGISTRY,
        chain_id=31337,
        rpc_url="http://localhost:8545",
    )


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def admin_role() -> RoleDefinition:
    return RoleDefinition(identifier=ADMIN_ID, label="ADMIN")


@pytest.fixture
def minter_role() -> RoleDefinition:
    return RoleDefinition(identifier=MINTER_ID, label="MINTER")
