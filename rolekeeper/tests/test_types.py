"""Tests for rolekeeper.core.types: result variants and report helpers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from rolekeeper.core.types import (
    GrantResult,
    GrantStatus,
    NetworkProfile,
    ProbePayload,
    ProbeResult,
    ProvisioningReport,
    RoleDefinition,
)

ROLE = RoleDefinition(identifier="0x" + "b" * 64, label="MINTER")
TARGET = "0x1111111111111111111111111111111111111111"


# ── GrantResult ──────────────────────────────────────────────────────────────


class TestGrantResult:
    def test_granted_requires_tx_ref(self):
        with pytest.raises(ValidationError):
            GrantResult(target=TARGET, role=ROLE, status=GrantStatus.GRANTED)

    def test_granted_constructor(self):
        r = GrantResult.granted(TARGET, ROLE, "0xabc")
        assert r.status == GrantStatus.GRANTED
        assert r.tx_ref == "0xabc"
        assert r.error is None
        assert r.holds_role

    def test_already_granted_has_no_tx_or_error(self):
        r = GrantResult.already_granted(TARGET, ROLE)
        assert r.tx_ref is None and r.error is None
        assert r.holds_role
        with pytest.raises(ValidationError):
            GrantResult(target=TARGET, role=ROLE, status=GrantStatus.ALREADY_GRANTED, tx_ref="0x1")

    def test_invalid_requires_error(self):
        with pytest.raises(ValidationError):
            GrantResult(target="nope", role=ROLE, status=GrantStatus.INVALID)
        r = GrantResult.invalid("nope", ROLE, "Invalid address format")
        assert not r.holds_role

    def test_invalid_cannot_carry_tx(self):
        with pytest.raises(ValidationError):
            GrantResult(target="nope", role=ROLE, status=GrantStatus.INVALID, error="x", tx_ref="0x1")

    def test_failed_may_keep_tx_ref(self):
        r = GrantResult.failed(TARGET, ROLE, "reverted", tx_ref="0xdead")
        assert r.status == GrantStatus.FAILED
        assert r.tx_ref == "0xdead"
        assert not r.holds_role

    def test_failed_requires_error(self):
        with pytest.raises(ValidationError):
            GrantResult(target=TARGET, role=ROLE, status=GrantStatus.FAILED)

    def test_frozen(self):
        r = GrantResult.already_granted(TARGET, ROLE)
        with pytest.raises(ValidationError):
            r.status = GrantStatus.GRANTED


# ── Profile / payload ────────────────────────────────────────────────────────


class TestNetworkProfile:
    def test_registry_address_required(self):
        with pytest.raises(ValidationError):
            NetworkProfile(name="local", registry_address="")

    def test_tx_url(self):
        p = NetworkProfile(name="polygon", registry_address="0x1", explorer_url="https://polygonscan.com/")
        assert p.tx_url("0xabc") == "https://polygonscan.com/tx/0xabc"

    def test_tx_url_without_explorer(self):
        p = NetworkProfile(name="local", registry_address="0x1")
        assert p.tx_url("0xabc") == ""


class TestProbeTypes:
    def test_payload_args_order(self):
        p = ProbePayload(
            subject=TARGET,
            course_id="test-course-001",
            course_name="Test Course",
            completion_date=1700000000,
            content_hash="QmTest1",
        )
        assert p.as_args() == [TARGET, "test-course-001", "Test Course", "1700000000", "QmTest1"]

    def test_probe_result_defaults(self):
        r = ProbeResult()
        assert not r.confirmed
        assert r.failure_cause.value == "none"
        assert not r.skipped


# ── Report ───────────────────────────────────────────────────────────────────


class TestProvisioningReport:
    def test_summary_counts_every_status(self):
        report = ProvisioningReport(
            network="local",
            registry_address="0x1",
            caller=TARGET,
            grants=[
                GrantResult.granted(TARGET, ROLE, "0xabc"),
                GrantResult.invalid("bad", ROLE, "Invalid address format"),
                GrantResult.invalid("worse", ROLE, "Invalid address format"),
            ],
        )
        assert report.summary == {"already_granted": 0, "granted": 1, "invalid": 2, "failed": 0}
        assert report.count(GrantStatus.INVALID) == 2

    def test_grants_for_label(self):
        admin = RoleDefinition(identifier="0x" + "a" * 64, label="ADMIN")
        report = ProvisioningReport(
            network="local",
            registry_address="0x1",
            caller=TARGET,
            grants=[
                GrantResult.granted(TARGET, ROLE, "0xabc"),
                GrantResult.already_granted(TARGET, admin),
            ],
        )
        assert [g.role.label for g in report.grants_for("ADMIN")] == ["ADMIN"]
        assert report.grants_for("UNKNOWN") == []
