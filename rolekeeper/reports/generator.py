"""Provisioning report rendering (JSON and Markdown via Jinja2)."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from rolekeeper import __version__
from rolekeeper.core.types import GrantResult, GrantStatus, ProvisioningReport


TEMPLATE_DIR = Path(__file__).parent / "templates"

_STATUS_BADGE = {
    GrantStatus.GRANTED.value: "✅ granted",
    GrantStatus.ALREADY_GRANTED.value: "ℹ️ already granted",
    GrantStatus.INVALID.value: "⚠️ invalid",
    GrantStatus.FAILED.value: "❌ failed",
}


class ReportGenerator:
    """Render a ProvisioningReport for humans or machines."""

    def __init__(self, explorer_url: str = "") -> None:
        self._explorer_url = explorer_url.rstrip("/")
        self._jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._jinja_env.filters["status_badge"] = self._status_badge
        self._jinja_env.filters["tx_link"] = self._tx_link

    def generate_json(self, report: ProvisioningReport) -> str:
        """Generate a JSON document for CI pipelines and audit storage."""
        payload: dict[str, Any] = {
            "tool": {"name": "rolekeeper", "version": __version__},
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "summary": report.summary,
            "report": report.model_dump(mode="json"),
        }
        for grant, raw in zip(report.grants, payload["report"]["grants"]):
            if grant.tx_ref:
                raw["tx_url"] = self._tx_url(grant.tx_ref)
        return json.dumps(payload, indent=2)

    def generate_markdown(self, report: ProvisioningReport) -> str:
        """Generate a Markdown audit record."""
        template = self._jinja_env.get_template("report.md.j2")
        return template.render(
            report=report,
            summary=report.summary,
            grants_by_role=self._group_grants(report),
            version=__version__,
            generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _group_grants(report: ProvisioningReport) -> dict[str, list[GrantResult]]:
        grouped: dict[str, list[GrantResult]] = {}
        for grant in report.grants:
            grouped.setdefault(grant.role.label, []).append(grant)
        return grouped

    def _tx_url(self, tx_hash: str) -> str:
        return f"{self._explorer_url}/tx/{tx_hash}" if self._explorer_url else ""

    def _tx_link(self, tx_hash: str | None) -> str:
        if not tx_hash:
            return ""
        url = self._tx_url(tx_hash)
        short = f"{tx_hash[:10]}…"
        return f"[{short}]({url})" if url else f"`{short}`"

    @staticmethod
    def _status_badge(status: Any) -> str:
        value = getattr(status, "value", status)
        return _STATUS_BADGE.get(value, str(value))
