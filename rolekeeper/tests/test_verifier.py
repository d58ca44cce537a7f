"""Tests for RoleVerifier."""

from __future__ import annotations

from rolekeeper.core.errors import RegistryReadError
from rolekeeper.core.types import Principal
from rolekeeper.provisioning.verifier import RoleVerifier

from conftest import ALICE, BOB, CALLER, MINTER_ID


class TestRoleVerifier:
    def test_lists_only_holders(self, registry, profile, minter_role):
        registry.members[MINTER_ID].add(ALICE.lower())
        holders = RoleVerifier(registry).list_holders(profile, minter_role, [CALLER, ALICE, BOB])
        assert holders == [Principal(address=CALLER), Principal(address=ALICE)]

    def test_deduplicates_and_skips_invalid(self, registry, profile, minter_role):
        holders = RoleVerifier(registry).list_holders(
            profile, minter_role, [CALLER, CALLER.lower(), "garbage"],
        )
        assert holders == [Principal(address=CALLER)]
        checked = [c for c in registry.calls if c[0] == "has_role"]
        assert len(checked) == 1

    def test_read_only(self, registry, profile, minter_role):
        RoleVerifier(registry).list_holders(profile, minter_role, [CALLER, ALICE])
        assert registry.mutating_calls() == []

    def test_unreadable_candidate_is_excluded(self, registry, profile, minter_role):
        registry.members[MINTER_ID].add(ALICE.lower())
        registry.read_errors[ALICE.lower()] = RegistryReadError("connection reset")
        holders = RoleVerifier(registry).list_holders(profile, minter_role, [CALLER, ALICE])
        assert holders == [Principal(address=CALLER)]

    def test_empty_candidates(self, registry, profile, minter_role):
        assert RoleVerifier(registry).list_holders(profile, minter_role, []) == []
