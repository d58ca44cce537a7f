"""Provisioning orchestrator: coordinates the role setup workflow."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from rolekeeper.core.addresses import parse_address_list
from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.errors import RegistryReadError, RegistryUnavailableError
from rolekeeper.core.types import (
    GrantResult,
    NetworkProfile,
    Principal,
    ProbeResult,
    ProvisioningReport,
    RoleDefinition,
    RoleRequest,
)
from rolekeeper.ledger.base import RegistryClient, ensure_bound
from rolekeeper.provisioning.gate import AccessGate
from rolekeeper.provisioning.granter import RoleGranter
from rolekeeper.provisioning.probe import CapabilityProbe
from rolekeeper.provisioning.sequencing import SubmissionSequencer
from rolekeeper.provisioning.verifier import RoleVerifier

logger = logging.getLogger(__name__)


def requests_from_settings(settings: Settings) -> list[RoleRequest]:
    """Role requests from AUTHORIZED_MINTERS / ADMIN_WALLETS."""
    return [
        RoleRequest(label=label, targets=parse_address_list(raw))
        for label, raw in settings.role_targets().items()
    ]


class ProvisioningOrchestrator:
    """Coordinates a full provisioning run.

    Flow:
    1. RESOLVING   - Resolve role identifiers and the sender identity
    2. GATING      - AccessGate: caller must hold the admin role (fatal)
    3. GRANTING    - RoleGranter once per requested role
    4. VERIFYING   - RoleVerifier over caller + every processed target
    5. PROBING     - CapabilityProbe (advisory, skipped on cancellation)

    Only ConfigurationError and PermissionDeniedError escape ``run``;
    everything else ends up in the returned report.
    """

    def __init__(self, client: RegistryClient, settings: Settings | None = None) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self._sequencer = SubmissionSequencer()

    def resolve_role(self, profile: NetworkProfile, label: str) -> RoleDefinition:
        try:
            identifier = self._client.role_identifier(label)
        except RegistryReadError as exc:
            raise RegistryUnavailableError(
                f"Could not resolve {label}_ROLE on {profile.registry_address}: {exc}",
                network=profile.name,
            ) from exc
        role = RoleDefinition(identifier=identifier, label=label.upper())
        logger.info("%s_ROLE: %s", role.label, role.identifier, extra={"network": profile.name})
        return role

    def run(
        self,
        profile: NetworkProfile,
        requests: list[RoleRequest],
        *,
        probe: bool | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ProvisioningReport:
        started_at = datetime.now(timezone.utc)
        ensure_bound(self._client, profile)
        run_probe = self._settings.probe_enabled if probe is None else probe

        # Step 1: Resolve
        try:
            caller = self._client.sender_address()
        except RegistryReadError as exc:
            raise RegistryUnavailableError(
                f"Could not determine the signing address: {exc}", network=profile.name,
            ) from exc
        admin_role = self.resolve_role(profile, self._settings.admin_role_label)
        roles: dict[str, RoleDefinition] = {admin_role.label: admin_role}
        for request in requests:
            label = request.label.upper()
            if label not in roles:
                roles[label] = self.resolve_role(profile, label)
        logger.info("Current signer: %s", caller, extra={"network": profile.name})

        # Step 2: Gate
        gate = AccessGate(self._client, admin_role)
        gate.authorize(profile, caller)

        # Step 3: Grant
        granter = RoleGranter(
            self._client, gate, self._sequencer, tx_timeout=self._settings.tx_timeout_seconds,
        )
        grants: list[GrantResult] = []
        pending: dict[str, list[str]] = {}
        for request in requests:
            role = roles[request.label.upper()]
            if not request.targets:
                logger.info("No %s targets configured", role.label, extra={"network": profile.name})
                continue
            if cancel_event is not None and cancel_event.is_set():
                pending[role.label] = list(request.targets)
                continue
            logger.info(
                "Granting %s roles to %d target(s)", role.label, len(request.targets),
                extra={"network": profile.name, "role": role.label},
            )
            results = granter.grant_to_all(profile, role, request.targets, cancel_event=cancel_event)
            grants.extend(results)
            if len(results) < len(request.targets):
                pending[role.label] = list(request.targets[len(results):])

        # Step 4: Verify
        verifier = RoleVerifier(self._client)
        holders: dict[str, list[Principal]] = {}
        for request in requests:
            role = roles[request.label.upper()]
            processed = [g.target for g in grants if g.role.label == role.label]
            holders[role.label] = verifier.list_holders(profile, role, [caller, *processed])

        # Step 5: Probe
        cancelled = cancel_event is not None and cancel_event.is_set()
        probe_result: ProbeResult | None = None
        if cancelled:
            probe_result = ProbeResult(skipped=True, warning="skipped: run was cancelled")
        elif run_probe:
            probe_result = CapabilityProbe(
                self._client, gate, self._sequencer, settings=self._settings,
            ).probe(profile)

        report = ProvisioningReport(
            network=profile.name,
            registry_address=profile.registry_address,
            caller=caller,
            roles=list(roles.values()),
            grants=grants,
            holders=holders,
            probe=probe_result,
            cancelled=cancelled,
            pending=pending,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            metadata={"chain_id": profile.chain_id, "explorer_url": profile.explorer_url},
        )
        logger.info(
            "Role setup complete: %s", report.summary, extra={"network": profile.name},
        )
        return report
