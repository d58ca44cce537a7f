"""Shared enums and schemas used across the provisioning workflow."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ── Enums ────────────────────────────────────────────────────────────────────


class GrantStatus(str, enum.Enum):
    """Terminal state of one target in a grant batch."""

    ALREADY_GRANTED = "already_granted"
    GRANTED = "granted"
    INVALID = "invalid"
    FAILED = "failed"


class GrantStage(str, enum.Enum):
    """Intermediate states a target passes through while being granted."""

    PENDING = "pending"
    VALIDATING = "validating"
    CHECKING = "checking"
    SUBMITTING = "submitting"


class ProbeFailureCause(str, enum.Enum):
    """Why the capability probe did not confirm the capability."""

    NONE = "none"
    UNPAUSE_FAILED = "unpause_failed"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    REVERTED = "reverted"
    TIMEOUT = "timeout"
    EVENT_MISSING = "event_missing"
    UNEXPECTED = "unexpected"


# ── Network / identities ─────────────────────────────────────────────────────


class NetworkProfile(BaseModel):
    """Resolved network with its registry address."""

    model_config = ConfigDict(frozen=True)

    name: str
    registry_address: str = Field(min_length=1)
    chain_id: int = 0
    rpc_url: str = ""
    explorer_url: str = ""

    def tx_url(self, tx_hash: str) -> str:
        if not self.explorer_url:
            return ""
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


class Principal(BaseModel):
    """An identity holding or receiving a role."""

    model_config = ConfigDict(frozen=True)

    address: str


class RoleDefinition(BaseModel):
    """On-chain role identifier paired with its human label."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    label: str


# ── Grant results ────────────────────────────────────────────────────────────


class GrantResult(BaseModel):
    """Outcome for one target.

    Behaves as a tagged union over ``status``:

        ALREADY_GRANTED  - no tx_ref, no error
        GRANTED          - tx_ref required
        INVALID, FAILED  - error required

    Use the named constructors rather than building instances by hand.
    """

    model_config = ConfigDict(frozen=True)

    target: str
    role: RoleDefinition
    status: GrantStatus
    tx_ref: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_variant(self) -> "GrantResult":
        if self.status == GrantStatus.GRANTED:
            if not self.tx_ref:
                raise ValueError("GRANTED result requires tx_ref")
            if self.error:
                raise ValueError("GRANTED result cannot carry an error")
        elif self.status in (GrantStatus.INVALID, GrantStatus.FAILED):
            if not self.error:
                raise ValueError(f"{self.status.value.upper()} result requires an error")
            if self.tx_ref and self.status == GrantStatus.INVALID:
                raise ValueError("INVALID result cannot carry tx_ref")
        elif self.tx_ref or self.error:
            raise ValueError("ALREADY_GRANTED result carries neither tx_ref nor error")
        return self

    @classmethod
    def already_granted(cls, target: str, role: RoleDefinition) -> "GrantResult":
        return cls(target=target, role=role, status=GrantStatus.ALREADY_GRANTED)

    @classmethod
    def granted(cls, target: str, role: RoleDefinition, tx_ref: str) -> "GrantResult":
        return cls(target=target, role=role, status=GrantStatus.GRANTED, tx_ref=tx_ref)

    @classmethod
    def invalid(cls, target: str, role: RoleDefinition, error: str) -> "GrantResult":
        return cls(target=target, role=role, status=GrantStatus.INVALID, error=error)

    @classmethod
    def failed(
        cls,
        target: str,
        role: RoleDefinition,
        error: str,
        tx_ref: str | None = None,
    ) -> "GrantResult":
        # tx_ref is kept when a submitted transaction later reverted or timed out
        return cls(
            target=target, role=role, status=GrantStatus.FAILED, error=error, tx_ref=tx_ref,
        )

    @property
    def holds_role(self) -> bool:
        return self.status in (GrantStatus.GRANTED, GrantStatus.ALREADY_GRANTED)


# ── Probe ────────────────────────────────────────────────────────────────────


class ConfirmationEvent(BaseModel):
    """Decoded confirmation event emitted by the capability call."""

    model_config = ConfigDict(frozen=True)

    name: str
    identifier: int
    subject: str = ""
    tx_hash: str = ""
    log_index: int = 0
    block_number: int = 0


class ProbePayload(BaseModel):
    """Synthetic arguments for the capability-exercising mutation."""

    model_config = ConfigDict(frozen=True)

    subject: str
    course_id: str
    course_name: str
    completion_date: int
    content_hash: str

    def as_args(self) -> list[str]:
        return [
            self.subject,
            self.course_id,
            self.course_name,
            str(self.completion_date),
            self.content_hash,
        ]


class ProbeResult(BaseModel):
    """Advisory outcome of the capability probe."""

    model_config = ConfigDict(frozen=True)

    paused_before: bool = False
    unpaused: bool = False
    tx_ref: str | None = None
    confirmed_event: ConfirmationEvent | None = None
    error: str | None = None
    warning: str | None = None
    failure_cause: ProbeFailureCause = ProbeFailureCause.NONE
    skipped: bool = False

    @property
    def confirmed(self) -> bool:
        return self.confirmed_event is not None


# ── Report ───────────────────────────────────────────────────────────────────


class RoleRequest(BaseModel):
    """Targets to provision for one role label."""

    model_config = ConfigDict(frozen=True)

    label: str
    targets: list[str] = Field(default_factory=list)


class ProvisioningReport(BaseModel):
    """Audit record for a full provisioning run."""

    network: str
    registry_address: str
    caller: str
    roles: list[RoleDefinition] = Field(default_factory=list)
    grants: list[GrantResult] = Field(default_factory=list)
    holders: dict[str, list[Principal]] = Field(default_factory=dict)
    probe: ProbeResult | None = None
    cancelled: bool = False
    pending: dict[str, list[str]] = Field(default_factory=dict)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def count(self, status: GrantStatus) -> int:
        return sum(1 for g in self.grants if g.status == status)

    @property
    def summary(self) -> dict[str, int]:
        return {status.value: self.count(status) for status in GrantStatus}

    def grants_for(self, label: str) -> list[GrantResult]:
        return [g for g in self.grants if g.role.label == label]
