"""Idempotent batch role granting with per-target failure isolation."""

from __future__ import annotations

import logging
import threading

from rolekeeper.core.addresses import validate_address
from rolekeeper.core.errors import (
    AddressValidationError,
    ConcurrentSubmissionError,
    ConfigurationError,
    PermissionDeniedError,
    TransactionError,
)
from rolekeeper.core.types import GrantResult, GrantStage, NetworkProfile, RoleDefinition
from rolekeeper.ledger.base import RegistryClient, ensure_bound
from rolekeeper.provisioning.gate import AccessGate
from rolekeeper.provisioning.sequencing import SubmissionSequencer

logger = logging.getLogger(__name__)


class RoleGranter:
    """Ensures every target holds a role.

    Per target:

        PENDING → VALIDATING → INVALID
                             → CHECKING → ALREADY_GRANTED
                                        → SUBMITTING → GRANTED | FAILED

    Targets are processed strictly one after another. Do not parallelise
    this loop: every grant consumes the sender's next nonce, and the shared
    ``SubmissionSequencer`` raises if two submissions ever overlap.
    """

    def __init__(
        self,
        client: RegistryClient,
        gate: AccessGate,
        sequencer: SubmissionSequencer,
        tx_timeout: float = 300.0,
    ) -> None:
        self._client = client
        self._gate = gate
        self._sequencer = sequencer
        self._tx_timeout = tx_timeout

    def grant_to_all(
        self,
        profile: NetworkProfile,
        role: RoleDefinition,
        targets: list[str],
        cancel_event: threading.Event | None = None,
    ) -> list[GrantResult]:
        """Grant ``role`` to each target, returning one result per processed target.

        Results are in target order. When ``cancel_event`` is set the loop
        stops before the next target, so the returned list may be shorter
        than ``targets``; a transaction already submitted is always awaited.
        """
        if not targets:
            return []

        ensure_bound(self._client, profile)
        results: list[GrantResult] = []
        for target in targets:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(
                    "Cancellation requested; %d %s target(s) left unprocessed",
                    len(targets) - len(results), role.label,
                    extra={"network": profile.name, "role": role.label},
                )
                break
            result = self._grant_one(profile, role, target)
            results.append(result)
        return results

    def _grant_one(self, profile: NetworkProfile, role: RoleDefinition, target: str) -> GrantResult:
        log_extra = {"network": profile.name, "role": role.label, "target": target}
        stage = GrantStage.VALIDATING
        try:
            address = validate_address(target)
        except AddressValidationError as exc:
            logger.warning("Invalid address %r, skipping", target, extra={**log_extra, "status": "invalid"})
            return GrantResult.invalid(target, role, str(exc))

        tx_hash: str | None = None
        try:
            stage = GrantStage.CHECKING
            if self._client.has_role(role.identifier, address):
                logger.info(
                    "%s already has %s_ROLE", address, role.label,
                    extra={**log_extra, "status": "already_granted"},
                )
                return GrantResult.already_granted(address, role)

            stage = GrantStage.SUBMITTING
            if not self._gate.authorized:
                raise PermissionDeniedError("grantRole attempted before the caller was authorized")
            with self._sequencer.exclusive(f"grantRole({role.label}, {address})"):
                logger.info("Granting %s_ROLE to %s", role.label, address, extra=log_extra)
                tx = self._client.grant_role(role.identifier, address)
                tx_hash = tx.tx_hash
                self._client.wait_for_receipt(tx, self._tx_timeout)
        except (ConfigurationError, PermissionDeniedError, ConcurrentSubmissionError):
            raise
        except TransactionError as exc:
            logger.error(
                "Failed to grant %s_ROLE to %s during %s: %s", role.label, address, stage.value, exc,
                extra={**log_extra, "status": "failed", "tx_hash": tx_hash or exc.tx_hash},
            )
            return GrantResult.failed(address, role, str(exc), tx_ref=tx_hash or exc.tx_hash)
        except Exception as exc:
            logger.exception(
                "Unexpected error granting %s_ROLE to %s during %s", role.label, address, stage.value,
                extra={**log_extra, "status": "failed"},
            )
            return GrantResult.failed(address, role, f"{type(exc).__name__}: {exc}", tx_ref=tx_hash)

        logger.info(
            "%s_ROLE granted to %s", role.label, address,
            extra={**log_extra, "status": "granted", "tx_hash": tx_hash},
        )
        return GrantResult.granted(address, role, tx_hash)
