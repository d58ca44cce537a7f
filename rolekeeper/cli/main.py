"""rolekeeper CLI: provision and verify registry roles.

Usage:
    rolekeeper provision [--network N]            Grant roles from AUTHORIZED_MINTERS / ADMIN_WALLETS
    rolekeeper provision --role MINTER=0xabc,0xdef Grant explicit targets
    rolekeeper provision --plan roles.yaml        Grant targets listed in a YAML plan
    rolekeeper holders --role MINTER 0xabc ...    Read-only membership report
    rolekeeper networks                           List networks and their registry addresses
    rolekeeper config                             Show current configuration
    rolekeeper --version                          Print version

Examples:
    rolekeeper provision --network mumbai --role MINTER=0x1111...,0x2222...
    rolekeeper provision --network polygon --no-probe --format json -o roles.json
    rolekeeper holders --network polygon --role ADMIN 0x3333...
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from rolekeeper import __version__
from rolekeeper.core.addresses import parse_address_list
from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.errors import ConfigurationError, ExitCode, PermissionDeniedError
from rolekeeper.core.logging import NetworkLogFilter, setup_logging
from rolekeeper.core.networks import NetworkProfileResolver, get_all_networks
from rolekeeper.core.plan import load_plan
from rolekeeper.core.types import GrantStatus, ProvisioningReport, RoleRequest
from rolekeeper.ledger.cast import build_cast_client
from rolekeeper.provisioning import ProvisioningOrchestrator, RoleVerifier, requests_from_settings
from rolekeeper.reports.generator import ReportGenerator

logger = logging.getLogger("rolekeeper.cli")


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_BLUE = "\033[94m"
_CYAN = "\033[96m"
_DIM = "\033[2m"

_STATUS_STYLE = {
    GrantStatus.GRANTED: (_GREEN, "✅", "granted"),
    GrantStatus.ALREADY_GRANTED: (_YELLOW, "ℹ️ ", "already has role"),
    GrantStatus.INVALID: (_YELLOW, "⚠️ ", "invalid address, skipped"),
    GrantStatus.FAILED: (_RED, "❌", "failed"),
}


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


BANNER = f"\n{_BOLD}{_BLUE}🔐 rolekeeper{_RESET} {_DIM}registry role provisioning v{__version__}{_RESET}\n"


# ── CLI argument parser ─────────────────────────────────────────────────────


def _role_spec(value: str) -> RoleRequest:
    label, sep, raw = value.partition("=")
    if not sep or not label.strip():
        raise argparse.ArgumentTypeError(f"expected LABEL=addr[,addr...], got {value!r}")
    return RoleRequest(label=label.strip().upper(), targets=parse_address_list(raw))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rolekeeper",
        description="rolekeeper: role provisioning for access-controlled registries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")
    parser.add_argument("--log-level", default=None, help="Override ROLEKEEPER_LOG_LEVEL")

    sub = parser.add_subparsers(dest="command")

    # ── provision ────────────────────────────────────────────────────────────
    prov_p = sub.add_parser("provision", help="Grant roles and verify the result")
    prov_p.add_argument("--network", "-n", help="Network name (default: ROLEKEEPER_DEFAULT_NETWORK)")
    targets = prov_p.add_mutually_exclusive_group()
    targets.add_argument(
        "--role",
        "-r",
        action="append",
        type=_role_spec,
        default=[],
        metavar="LABEL=ADDR[,ADDR...]",
        help="Targets for a role; repeatable. Overrides AUTHORIZED_MINTERS / ADMIN_WALLETS",
    )
    targets.add_argument("--plan", "-p", help="YAML plan file listing role targets")
    prov_p.add_argument("--no-probe", action="store_true", help="Skip the capability probe")
    prov_p.add_argument(
        "--format",
        "-f",
        default="table",
        choices=["table", "json", "markdown"],
        help="Output format (default: table)",
    )
    prov_p.add_argument("--output", "-o", help="Write output to file instead of stdout")

    # ── holders ──────────────────────────────────────────────────────────────
    hold_p = sub.add_parser("holders", help="Report which addresses hold a role")
    hold_p.add_argument("--network", "-n", help="Network name")
    hold_p.add_argument("--role", "-r", required=True, help="Role label, e.g. MINTER")
    hold_p.add_argument("addresses", nargs="*", help="Candidate addresses (default: configured targets)")

    # ── networks / config ────────────────────────────────────────────────────
    sub.add_parser("networks", help="List supported networks")
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Output ───────────────────────────────────────────────────────────────────


def _print_table(report: ProvisioningReport, quiet: bool = False) -> None:
    """Pretty-print a provisioning report."""
    if not quiet:
        print(f"\n{_BOLD}Role setup{_RESET} on {_c(report.network, _CYAN)}")
        print(f"  Registry: {report.registry_address}")
        print(f"  Signer:   {report.caller}\n")

    if not report.grants:
        print(_c("  ℹ️  No role targets were processed.", _YELLOW))

    current = None
    for grant in report.grants:
        if grant.role.label != current and not quiet:
            current = grant.role.label
            print(f"  {_BOLD}{current}_ROLE{_RESET}")
        color, icon, text = _STATUS_STYLE[grant.status]
        line = f"    {icon} {grant.target}  {_c(text, color)}"
        if grant.tx_ref:
            line += f"  {_DIM}tx {grant.tx_ref}{_RESET}"
        print(line)
        if grant.error and not quiet:
            print(f"       {_DIM}{grant.error[:200]}{_RESET}")

    for label, targets in report.pending.items():
        print(_c(f"  ⏹  {len(targets)} {label} target(s) not processed (cancelled)", _YELLOW))

    if not quiet:
        print(f"\n{_BOLD}📋 Current role holders{_RESET}")
        for label, principals in report.holders.items():
            print(f"  Known {label}_ROLE holders:")
            for p in principals:
                suffix = " (signer)" if p.address.lower() == report.caller.lower() else ""
                print(f"    - {p.address}{suffix}")

    probe = report.probe
    if probe is not None and not quiet:
        print(f"\n{_BOLD}🧪 Capability probe{_RESET}")
        if probe.skipped:
            print(_c(f"  skipped: {probe.warning or probe.error}", _DIM))
        elif probe.confirmed_event is not None:
            ev = probe.confirmed_event
            print(_c(f"  ✅ {ev.name} confirmed, id {ev.identifier}", _GREEN))
            print(f"     Transaction: {probe.tx_ref}")
        elif probe.warning:
            print(_c(f"  ⚠️  {probe.warning}", _YELLOW))
        elif probe.error:
            print(_c(f"  ❌ Probe failed ({probe.failure_cause.value}): {probe.error}", _RED))

    summary = ", ".join(f"{count} {status}" for status, count in report.summary.items() if count)
    print(f"\n  {_c('Done', _GREEN)}: {summary or 'nothing to do'}\n")


# ── Cancellation ─────────────────────────────────────────────────────────────


def _install_sigint(cancel_event: threading.Event) -> Any:
    """First Ctrl-C requests cancellation between targets; the second aborts."""

    def _handler(signum: int, frame: Any) -> None:
        if cancel_event.is_set():
            raise KeyboardInterrupt
        cancel_event.set()
        print(_c("\n  Cancellation requested; finishing the in-flight transaction…", _YELLOW), file=sys.stderr)

    try:
        return signal.signal(signal.SIGINT, _handler)
    except ValueError:  # not on the main thread
        return None


# ── Commands ─────────────────────────────────────────────────────────────────


def _resolve_requests(args: argparse.Namespace, settings: Settings) -> tuple[str, list[RoleRequest], bool]:
    network = args.network
    probe = settings.probe_enabled and not args.no_probe
    if args.plan:
        plan = load_plan(args.plan)
        network = network or plan.network
        requests = plan.requests
        if plan.probe is False:
            probe = False
    elif args.role:
        requests = list(args.role)
    else:
        requests = requests_from_settings(settings)
    return network or settings.default_network, requests, probe


def _run_provision(args: argparse.Namespace) -> int:
    settings = get_settings()
    network, requests, probe = _resolve_requests(args, settings)
    profile = NetworkProfileResolver(settings).resolve(network)
    for handler in logging.getLogger().handlers:
        handler.addFilter(NetworkLogFilter(profile.name))
    if not args.quiet:
        print(f"  Network: {_c(profile.name, _CYAN)}  Registry: {profile.registry_address}", file=sys.stderr)

    client = build_cast_client(profile, settings)
    cancel_event = threading.Event()
    previous = _install_sigint(cancel_event)
    try:
        report = ProvisioningOrchestrator(client, settings).run(
            profile, requests, probe=probe, cancel_event=cancel_event,
        )
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    reporter = ReportGenerator(explorer_url=profile.explorer_url)
    output: str | None = None
    if args.format == "table":
        _print_table(report, quiet=args.quiet)
    elif args.format == "json":
        output = reporter.generate_json(report)
    elif args.format == "markdown":
        output = reporter.generate_markdown(report)

    if output:
        if args.output:
            Path(args.output).write_text(output)
            if not args.quiet:
                print(f"  Written to {_c(args.output, _CYAN)}", file=sys.stderr)
        else:
            print(output)

    # Per-target failures and probe problems are reported, never escalated
    return ExitCode.OK


def _run_holders(args: argparse.Namespace) -> int:
    settings = get_settings()
    profile = NetworkProfileResolver(settings).resolve(args.network or settings.default_network)
    label = args.role.upper()
    candidates = list(args.addresses) or parse_address_list(settings.role_targets().get(label, ""))
    if not candidates:
        print(_c(f"No candidate addresses for {label}; pass some on the command line.", _YELLOW))
        return ExitCode.OK

    client = build_cast_client(profile, settings)
    role = ProvisioningOrchestrator(client, settings).resolve_role(profile, label)
    holders = RoleVerifier(client).list_holders(profile, role, candidates)

    print(f"\n{_BOLD}Known {label}_ROLE holders{_RESET} on {_c(profile.name, _CYAN)}")
    if not holders:
        print(_c("  none of the candidates hold this role", _DIM))
    for p in holders:
        print(f"  - {p.address}")
    print()
    return ExitCode.OK


def _run_networks() -> int:
    resolver = NetworkProfileResolver(get_settings())
    print(f"\n{_BOLD}Supported networks{_RESET}\n")
    for net in get_all_networks():
        ok = resolver.is_configured(net.name)
        mark = _c("configured", _GREEN) if ok else _c("no registry address", _DIM)
        kind = "testnet" if net.is_testnet else "mainnet"
        print(f"  {net.name:<10} chain {net.chain_id:<6} {net.display_name:<16} {kind:<8} {net.native_currency:<4} {mark}")
    print()
    return ExitCode.OK


def _run_config() -> int:
    """Print current settings (redacted)."""
    s = get_settings()
    print(f"\n{_BOLD}rolekeeper configuration{_RESET}\n")
    for field_name in sorted(Settings.model_fields.keys()):
        val = getattr(s, field_name, "")
        if any(kw in field_name for kw in ("password", "secret", "key", "token")):
            val = "****" if val else "(not set)"
        print(f"  {_DIM}{field_name}:{_RESET}  {val}")
    print()
    return ExitCode.OK


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"rolekeeper {__version__}")
        return ExitCode.OK

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return ExitCode.OK

    settings = get_settings()
    setup_logging(settings.app_env, args.log_level or settings.log_level)

    try:
        if args.command == "provision":
            return _run_provision(args)
        if args.command == "holders":
            return _run_holders(args)
        if args.command == "networks":
            return _run_networks()
        if args.command == "config":
            return _run_config()
    except ConfigurationError as exc:
        print(_c(f"\n❌ Configuration error [{exc.code.value}]: {exc}", _RED), file=sys.stderr)
        return exc.exit_code
    except PermissionDeniedError as exc:
        print(_c(f"\n❌ {exc}. Cannot proceed.", _RED), file=sys.stderr)
        return exc.exit_code
    except Exception as exc:
        logger.exception("Unexpected failure")
        print(_c(f"\n❌ Script failed: {exc}", _RED), file=sys.stderr)
        return ExitCode.UNEXPECTED

    parser.print_help()
    return ExitCode.OK


if __name__ == "__main__":
    sys.exit(main())
