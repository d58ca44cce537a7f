"""Non-destructive smoke test of the granted capability.

Steps:
  1. Unpause the registry if it is paused (a failure stops the probe)
  2. Submit one synthetic capability call with a unique payload
  3. Await confirmation and decode the confirmation event
  4. Record every failure as advisory data; nothing is raised

The probe runs last and never changes the run's exit classification.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.errors import ConfirmationTimeoutError, ProbeError, TransactionError
from rolekeeper.core.types import NetworkProfile, ProbeFailureCause, ProbePayload, ProbeResult
from rolekeeper.ledger.base import RegistryClient, ensure_bound
from rolekeeper.ledger.events import EventSpec, find_confirmation
from rolekeeper.provisioning.gate import AccessGate
from rolekeeper.provisioning.sequencing import SubmissionSequencer

logger = logging.getLogger(__name__)

EVENT_MISSING_WARNING = "mutation succeeded but contract emitted no expected confirmation"

# Revert reasons emitted by OpenZeppelin AccessControl and common custom errors
_PERMISSION_PATTERNS = re.compile(
    r"accesscontrol|missing role|is missing|unauthorized|not authorized|caller is not|"
    r"0xe2517d3f",  # AccessControlUnauthorizedAccount(address,bytes32) selector
    re.IGNORECASE,
)

ONE_DAY_SECONDS = 86_400


def classify_failure(exc: BaseException) -> ProbeFailureCause:
    """Map an exception from the capability call to a failure cause."""
    if isinstance(exc, ConfirmationTimeoutError):
        return ProbeFailureCause.TIMEOUT
    if isinstance(exc, TransactionError):
        if _PERMISSION_PATTERNS.search(str(exc)):
            return ProbeFailureCause.INSUFFICIENT_PERMISSIONS
        return ProbeFailureCause.REVERTED
    return ProbeFailureCause.UNEXPECTED


class CapabilityProbe:
    """Exercises the capability once and confirms it via the emitted event."""

    def __init__(
        self,
        client: RegistryClient,
        gate: AccessGate,
        sequencer: SubmissionSequencer,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._gate = gate
        self._sequencer = sequencer
        self._settings = settings or get_settings()
        self._clock = clock

    def build_payload(self) -> ProbePayload:
        now = self._clock()
        return ProbePayload(
            subject=self._settings.probe_subject,
            course_id=self._settings.probe_course_id,
            course_name=self._settings.probe_course_name,
            completion_date=int(now) - ONE_DAY_SECONDS,
            content_hash=f"QmTest{int(now * 1000)}",
        )

    def probe(self, profile: NetworkProfile) -> ProbeResult:
        extra = {"network": profile.name}
        try:
            ensure_bound(self._client, profile)
            if not self._gate.authorized:
                raise ProbeError("caller was not authorized; probe not attempted")
            paused_before = self._client.paused()
        except ProbeError as exc:
            logger.warning("Capability probe skipped: %s", exc, extra=extra)
            return ProbeResult(skipped=True, error=str(exc), failure_cause=ProbeFailureCause.UNEXPECTED)
        except Exception as exc:
            logger.warning("Capability probe could not start: %s", exc, extra=extra)
            return ProbeResult(error=str(exc), failure_cause=ProbeFailureCause.UNEXPECTED)

        unpaused = False
        if paused_before:
            logger.warning("Registry is paused. Unpausing for test...", extra=extra)
            try:
                with self._sequencer.exclusive("unpause()"):
                    tx = self._client.unpause()
                    self._client.wait_for_receipt(tx, self._settings.tx_timeout_seconds)
                unpaused = True
                logger.info("Registry unpaused", extra={**extra, "tx_hash": tx.tx_hash})
            except Exception as exc:
                logger.error("Unpause failed, capability probe stopped: %s", exc, extra=extra)
                return ProbeResult(
                    paused_before=True,
                    error=f"unpause failed: {exc}",
                    failure_cause=ProbeFailureCause.UNPAUSE_FAILED,
                )

        tx_hash: str | None = None
        try:
            spec = EventSpec(
                name=self._settings.probe_event_name,
                topic=self._client.event_topic(self._settings.probe_event_signature),
            )
            payload = self.build_payload()
            logger.info("Attempting test %s for %s", spec.name, payload.subject, extra=extra)
            with self._sequencer.exclusive("exercise_capability()"):
                tx = self._client.exercise_capability(payload)
                tx_hash = tx.tx_hash
                receipt = self._client.wait_for_receipt(tx, self._settings.tx_timeout_seconds)
            lookup = find_confirmation(receipt, spec, emitter=profile.registry_address)
        except Exception as exc:
            cause = classify_failure(exc)
            logger.warning(
                "Test capability call failed (%s): %s", cause.value, exc,
                extra={**extra, "tx_hash": tx_hash},
            )
            return ProbeResult(
                paused_before=paused_before,
                unpaused=unpaused,
                tx_ref=tx_hash,
                error=str(exc),
                failure_cause=cause,
            )

        if not lookup.present:
            logger.warning(
                "%s (%s, %d log(s) scanned)", EVENT_MISSING_WARNING, spec.name, lookup.logs_scanned,
                extra={**extra, "tx_hash": tx_hash},
            )
            return ProbeResult(
                paused_before=paused_before,
                unpaused=unpaused,
                tx_ref=tx_hash,
                warning=EVENT_MISSING_WARNING,
                failure_cause=ProbeFailureCause.EVENT_MISSING,
            )

        logger.info(
            "Test %s confirmed: id %d", spec.name, lookup.event.identifier,
            extra={**extra, "tx_hash": tx_hash},
        )
        return ProbeResult(
            paused_before=paused_before,
            unpaused=unpaused,
            tx_ref=tx_hash,
            confirmed_event=lookup.event,
        )
