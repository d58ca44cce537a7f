"""Administrative privilege check performed before any mutation."""

from __future__ import annotations

import logging

from rolekeeper.core.addresses import is_address
from rolekeeper.core.errors import PermissionDeniedError, RegistryReadError, RegistryUnavailableError
from rolekeeper.core.types import NetworkProfile, RoleDefinition
from rolekeeper.ledger.base import RegistryClient, ensure_bound

logger = logging.getLogger(__name__)


class AccessGate:
    """Confirms the caller holds the administrative role.

    A non-admin's grantRole calls are guaranteed to revert, so the run is
    stopped here instead of spending gas on failures.
    """

    def __init__(self, client: RegistryClient, admin_role: RoleDefinition) -> None:
        self._client = client
        self._admin_role = admin_role
        self.authorized = False

    def authorize(self, profile: NetworkProfile, caller: str) -> None:
        ensure_bound(self._client, profile)
        if not is_address(caller):
            raise PermissionDeniedError(f"Caller identity {caller!r} is not a valid address")

        try:
            is_admin = self._client.has_role(self._admin_role.identifier, caller)
        except RegistryReadError as exc:
            raise RegistryUnavailableError(
                f"Could not read {self._admin_role.label} membership on {profile.registry_address}: {exc}",
                network=profile.name,
            ) from exc

        if not is_admin:
            logger.error(
                "Caller %s does not hold %s_ROLE; refusing to submit any transaction",
                caller, self._admin_role.label,
                extra={"network": profile.name, "role": self._admin_role.label},
            )
            raise PermissionDeniedError(
                f"{caller} does not hold {self._admin_role.label}_ROLE on {profile.registry_address}"
            )

        self.authorized = True
        logger.info(
            "Caller %s holds %s_ROLE", caller, self._admin_role.label,
            extra={"network": profile.name, "role": self._admin_role.label},
        )
