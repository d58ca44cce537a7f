"""Foundry ``cast`` backend for the registry interface.

Drives the ``cast`` binary as a subprocess:
  1. ``cast call``            - role lookups, membership and pause queries
  2. ``cast send --async``    - grantRole / unpause / mintCertificate
  3. ``cast receipt --json``  - bounded confirmation wait and log retrieval
  4. ``cast keccak``          - event topics
  5. ``cast wallet address``  - sender derived from the signing key

Signing, nonce assignment and RPC transport all stay inside cast.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from typing import Any

from rolekeeper.core.addresses import is_address, is_hash32
from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.errors import (
    ConfigurationError,
    ConfirmationTimeoutError,
    RegistryReadError,
    TransactionError,
    TransactionRevertedError,
)
from rolekeeper.core.types import NetworkProfile, ProbePayload
from rolekeeper.ledger.base import LogEntry, TxHandle, TxReceipt, retry_read

logger = logging.getLogger(__name__)

HAS_ROLE_SIG = "hasRole(bytes32,address)(bool)"
GRANT_ROLE_SIG = "grantRole(bytes32,address)"
PAUSED_SIG = "paused()(bool)"
UNPAUSE_SIG = "unpause()"
CAPABILITY_SIG = "mintCertificate(address,string,string,uint256,string)"


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.startswith("0x"):
        return int(text, 16) if len(text) > 2 else 0
    return int(text or 0)


def parse_receipt(raw: dict[str, Any]) -> TxReceipt:
    """Build a TxReceipt from ``cast receipt --json`` output."""
    logs = [
        LogEntry(
            address=entry.get("address", ""),
            topics=list(entry.get("topics") or []),
            data=entry.get("data") or "0x",
            log_index=_to_int(entry.get("logIndex")),
        )
        for entry in raw.get("logs") or []
    ]
    return TxReceipt(
        tx_hash=raw.get("transactionHash", ""),
        status=_to_int(raw.get("status", 1)),
        block_number=_to_int(raw.get("blockNumber")),
        gas_used=_to_int(raw.get("gasUsed")),
        logs=logs,
    )


class CastRegistryClient:
    """Registry client backed by Foundry's cast.

    Every method blocks until cast exits. Mutations are submitted with
    ``--async`` so that submission and confirmation are separate steps and
    the confirmation wait can be bounded independently.
    """

    def __init__(
        self,
        profile: NetworkProfile,
        settings: Settings | None = None,
        cast_path: str | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.profile = profile
        self.registry_address = profile.registry_address
        self.cast_path = cast_path or os.path.join(self.settings.foundry_bin_path, "cast")
        self._sender: str | None = None

    # ── Availability ─────────────────────────────────────────────────────

    def check_available(self) -> bool:
        """Check if cast is runnable."""
        try:
            result = subprocess.run(
                [self.cast_path, "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (FileNotFoundError, PermissionError, subprocess.TimeoutExpired):
            return False
        if result.returncode == 0:
            logger.debug("cast available: %s", result.stdout.strip())
            return True
        return False

    # ── Subprocess plumbing ──────────────────────────────────────────────

    def _rpc_args(self) -> list[str]:
        return ["--rpc-url", self.profile.rpc_url] if self.profile.rpc_url else []

    def _auth_args(self) -> list[str]:
        key = self.settings.private_key.get_secret_value()
        if key:
            return ["--private-key", key]
        if self.settings.sender_address:
            return ["--unlocked", "--from", self.settings.sender_address]
        raise ConfigurationError(
            "No signer configured: set PRIVATE_KEY or ROLEKEEPER_SENDER_ADDRESS",
            network=self.profile.name,
        )

    def _redact(self, args: list[str]) -> str:
        shown: list[str] = []
        hide_next = False
        for arg in args:
            shown.append("****" if hide_next else arg)
            hide_next = arg == "--private-key"
        return " ".join(shown)

    def _run(
        self,
        args: list[str],
        *,
        timeout: float | None = None,
        error_cls: type[TransactionError] = RegistryReadError,
        timeout_cls: type[TransactionError] | None = None,
        tx_hash: str | None = None,
    ) -> str:
        cmd = [self.cast_path, *args]
        logger.debug("cast %s", self._redact(args))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout or self.settings.cast_timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            cls = timeout_cls or error_cls
            raise cls(
                f"cast {args[0]} timed out after {exc.timeout}s", tx_hash=tx_hash,
            ) from exc
        except FileNotFoundError as exc:
            raise ConfigurationError(f"cast binary not found at {self.cast_path}") from exc

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip() or f"exit code {result.returncode}"
            raise error_cls(f"cast {args[0]} failed: {detail}", tx_hash=tx_hash)
        return result.stdout.strip()

    def _call(self, signature: str, *params: str) -> str:
        args = ["call", self.registry_address, signature, *params, *self._rpc_args()]
        return retry_read(
            lambda: self._run(args),
            max_retries=self.settings.read_max_retries,
            base_delay=self.settings.read_retry_base_delay,
            label=signature.split("(")[0],
        )

    def _send(self, signature: str, *params: str) -> TxHandle:
        args = [
            "send", self.registry_address, signature, *params,
            "--async", *self._rpc_args(), *self._auth_args(),
        ]
        out = self._run(args, error_cls=TransactionError)
        tx_hash = out.splitlines()[-1].strip() if out else ""
        if not tx_hash.startswith("0x"):
            raise TransactionError(f"cast send returned no transaction hash: {out!r}")
        return TxHandle(tx_hash=tx_hash, description=signature.split("(")[0])

    @staticmethod
    def _parse_bool(out: str) -> bool:
        value = out.strip().lower()
        if value not in ("true", "false"):
            raise RegistryReadError(f"Unexpected boolean output from cast: {out!r}")
        return value == "true"

    # ── RegistryClient ───────────────────────────────────────────────────

    def sender_address(self) -> str:
        if self._sender is None:
            key = self.settings.private_key.get_secret_value()
            if key:
                self._sender = self._run(["wallet", "address", "--private-key", key])
            elif self.settings.sender_address:
                self._sender = self.settings.sender_address
            else:
                raise ConfigurationError(
                    "No signer configured: set PRIVATE_KEY or ROLEKEEPER_SENDER_ADDRESS",
                )
            if not is_address(self._sender):
                raise ConfigurationError(f"Signer address is malformed: {self._sender!r}")
        return self._sender

    def role_identifier(self, label: str) -> str:
        out = self._call(f"{label.upper()}_ROLE()(bytes32)")
        if not is_hash32(out):
            raise RegistryReadError(f"{label.upper()}_ROLE() returned a non-bytes32 value: {out!r}")
        return out

    def has_role(self, role_id: str, subject: str) -> bool:
        return self._parse_bool(self._call(HAS_ROLE_SIG, role_id, subject))

    def grant_role(self, role_id: str, subject: str) -> TxHandle:
        return self._send(GRANT_ROLE_SIG, role_id, subject)

    def paused(self) -> bool:
        return self._parse_bool(self._call(PAUSED_SIG))

    def unpause(self) -> TxHandle:
        return self._send(UNPAUSE_SIG)

    def exercise_capability(self, payload: ProbePayload) -> TxHandle:
        return self._send(CAPABILITY_SIG, *payload.as_args())

    def wait_for_receipt(self, tx: TxHandle, timeout: float) -> TxReceipt:
        args = [
            "receipt", tx.tx_hash,
            "--confirmations", str(self.settings.confirmations),
            "--json", *self._rpc_args(),
        ]
        out = self._run(
            args,
            timeout=timeout,
            error_cls=TransactionError,
            timeout_cls=ConfirmationTimeoutError,
            tx_hash=tx.tx_hash,
        )
        try:
            receipt = parse_receipt(json.loads(out))
        except (json.JSONDecodeError, ValueError, AttributeError) as exc:
            raise TransactionError(
                f"Unreadable receipt for {tx.tx_hash}: {exc}", tx_hash=tx.tx_hash,
            ) from exc
        if not receipt.succeeded:
            raise TransactionRevertedError(
                f"Transaction {tx.tx_hash} reverted in block {receipt.block_number}",
                tx_hash=tx.tx_hash,
            )
        return receipt

    def event_topic(self, signature: str) -> str:
        out = self._run(["keccak", signature])
        if not is_hash32(out):
            raise RegistryReadError(f"cast keccak returned {out!r}")
        return out


def build_cast_client(profile: NetworkProfile, settings: Settings | None = None) -> CastRegistryClient:
    """Create a cast client for ``profile``, failing fast if cast is missing."""
    client = CastRegistryClient(profile, settings)
    if not client.check_available():
        raise ConfigurationError(
            f"Foundry cast not available at {client.cast_path}; "
            "install Foundry or set ROLEKEEPER_FOUNDRY_BIN_PATH",
            network=profile.name,
        )
    return client
