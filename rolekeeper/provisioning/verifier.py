"""Read-only re-verification of role membership."""

from __future__ import annotations

import logging

from rolekeeper.core.addresses import is_address, unique_addresses
from rolekeeper.core.errors import TransactionError
from rolekeeper.core.types import NetworkProfile, Principal, RoleDefinition
from rolekeeper.ledger.base import RegistryClient, ensure_bound

logger = logging.getLogger(__name__)


class RoleVerifier:
    """Produces the authoritative holder list for a known address set.

    The registry exposes no member enumeration, so only candidates the
    caller already knows about can be reported.
    """

    def __init__(self, client: RegistryClient) -> None:
        self._client = client

    def list_holders(
        self,
        profile: NetworkProfile,
        role: RoleDefinition,
        candidates: list[str],
    ) -> list[Principal]:
        ensure_bound(self._client, profile)
        holders: list[Principal] = []
        for candidate in unique_addresses(c.strip() for c in candidates):
            if not is_address(candidate):
                continue
            try:
                if self._client.has_role(role.identifier, candidate):
                    holders.append(Principal(address=candidate))
            except TransactionError as exc:
                logger.warning(
                    "Could not verify %s_ROLE for %s: %s", role.label, candidate, exc,
                    extra={"network": profile.name, "role": role.label, "target": candidate},
                )
        logger.info(
            "%d known %s_ROLE holder(s)", len(holders), role.label,
            extra={"network": profile.name, "role": role.label},
        )
        return holders
