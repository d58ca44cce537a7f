"""Tests for YAML provisioning plans."""

from __future__ import annotations

import pytest

from rolekeeper.core.errors import ConfigurationError
from rolekeeper.core.plan import load_plan, parse_plan
from rolekeeper.core.types import RoleRequest

from conftest import ALICE, BOB, CAROL


class TestParsePlan:
    def test_lists_and_strings(self):
        plan = parse_plan({"roles": {"minter": [ALICE, BOB], "ADMIN": f"{CAROL}, "}})
        assert plan.requests == [
            RoleRequest(label="MINTER", targets=[ALICE, BOB]),
            RoleRequest(label="ADMIN", targets=[CAROL]),
        ]
        assert plan.network is None
        assert plan.probe is None

    def test_options(self):
        plan = parse_plan({"network": "mumbai", "probe": False, "roles": {}})
        assert plan.network == "mumbai"
        assert plan.probe is False

    def test_invalid_entries_are_kept(self):
        plan = parse_plan({"roles": {"MINTER": ["not-an-address"]}})
        assert plan.requests[0].targets == ["not-an-address"]

    @pytest.mark.parametrize("data", [None, [], {"roles": ["x"]}, {"roles": {"MINTER": {"a": 1}}}])
    def test_bad_shapes(self, data):
        with pytest.raises(ConfigurationError):
            parse_plan(data)

    def test_probe_must_be_boolean(self):
        with pytest.raises(ConfigurationError, match="probe"):
            parse_plan({"probe": "sometimes", "roles": {}})


class TestLoadPlan:
    def test_unquoted_hex_addresses(self, tmp_path):
        path = tmp_path / "roles.yaml"
        path.write_text(f"roles:\n  MINTER:\n    - {ALICE}\n    - '{BOB}'\n")
        plan = load_plan(path)
        assert plan.requests[0].targets == [ALICE, BOB]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_plan(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("roles: [unterminated\n")
        with pytest.raises(ConfigurationError, match="not valid YAML"):
            load_plan(path)

    def test_short_and_decimal_values_keep_their_text(self, tmp_path):
        path = tmp_path / "roles.yaml"
        path.write_text("roles:\n  MINTER:\n    - 0x1234\n    - 12345\n  ADMIN: 0x99\n")
        plan = load_plan(path)
        assert plan.requests[0].targets == ["0x1234", "12345"]
        assert plan.requests[1].targets == ["0x99"]

    def test_probe_flag_still_boolean(self, tmp_path):
        path = tmp_path / "roles.yaml"
        path.write_text("probe: false\nroles: {}\n")
        assert load_plan(path).probe is False
