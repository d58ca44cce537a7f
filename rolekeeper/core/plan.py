"""YAML provisioning plans.

A plan file lists role targets explicitly instead of through environment
variables::

    network: mumbai          # optional, CLI --network wins
    probe: false             # optional
    roles:
      MINTER:
        - 0x1111111111111111111111111111111111111111
        - 0x2222222222222222222222222222222222222222
      ADMIN: "0x3333333333333333333333333333333333333333"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from rolekeeper.core.addresses import parse_address_list
from rolekeeper.core.errors import ConfigurationError
from rolekeeper.core.types import RoleRequest


class _PlanLoader(yaml.SafeLoader):
    """SafeLoader that keeps numeric-looking scalars as written."""


# unquoted 0x... and decimal values stay strings so address checks see the original text
_PlanLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float")]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class ProvisioningPlan(BaseModel):
    """Parsed plan file."""

    network: str | None = None
    probe: bool | None = None
    requests: list[RoleRequest] = Field(default_factory=list)


def parse_plan(data: Any) -> ProvisioningPlan:
    if not isinstance(data, dict):
        raise ConfigurationError("Plan must be a mapping with a 'roles' section")
    roles = data.get("roles") or {}
    if not isinstance(roles, dict):
        raise ConfigurationError("Plan 'roles' must map role labels to address lists")

    requests = []
    for label, raw in roles.items():
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            raw = str(raw)
        if raw is not None and not isinstance(raw, (str, list)):
            raise ConfigurationError(f"Targets for role {label!r} must be a list or a comma-separated string")
        targets = parse_address_list([str(x) for x in raw] if isinstance(raw, list) else raw)
        requests.append(RoleRequest(label=str(label).upper(), targets=targets))

    probe = data.get("probe")
    if probe is not None and not isinstance(probe, bool):
        raise ConfigurationError("Plan 'probe' must be true or false")
    network = data.get("network")
    return ProvisioningPlan(
        network=str(network) if network else None,
        probe=probe,
        requests=requests,
    )


def load_plan(path: str | Path) -> ProvisioningPlan:
    plan_path = Path(path)
    if not plan_path.is_file():
        raise ConfigurationError(f"Plan file not found: {plan_path}")
    try:
        data = yaml.load(plan_path.read_text(), Loader=_PlanLoader)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Plan file {plan_path} is not valid YAML: {exc}") from exc
    return parse_plan(data)
