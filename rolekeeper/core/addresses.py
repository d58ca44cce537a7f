"""Address and role-identifier format checks.

Mixed-case addresses must carry a valid EIP-55 checksum; all-lowercase and
all-uppercase forms are accepted without one.
"""

from __future__ import annotations

import re
from typing import Iterable

from eth_hash.auto import keccak

from rolekeeper.core.errors import AddressValidationError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def to_checksum_address(value: str) -> str:
    body = value[2:].lower()
    digest = keccak(body.encode("ascii")).hex()
    return "0x" + "".join(c.upper() if int(digest[i], 16) >= 8 else c for i, c in enumerate(body))


def is_address(value: str) -> bool:
    if not _ADDRESS_RE.match(value or ""):
        return False
    body = value[2:]
    if body == body.lower() or body == body.upper():
        return True
    return value == to_checksum_address(value)


def is_hash32(value: str) -> bool:
    return bool(_HASH_RE.match(value or ""))


def validate_address(value: str) -> str:
    """Return the stripped address or raise AddressValidationError."""
    candidate = (value or "").strip()
    if not is_address(candidate):
        raise AddressValidationError(f"Invalid address format: {value!r}")
    return candidate


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def parse_address_list(raw: str | Iterable[str] | None) -> list[str]:
    """Split a comma-separated list into trimmed, non-empty entries.

    Entries are not validated here; invalid ones must still reach the
    granter so they get reported as INVALID.
    """
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    return [p.strip() for p in parts if p and p.strip()]


def unique_addresses(addresses: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for addr in addresses:
        key = addr.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(addr)
    return out
