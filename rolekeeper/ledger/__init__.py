"""Ledger-client seam: the registry interface and its Foundry cast backend."""

from rolekeeper.ledger.base import LogEntry, RegistryClient, TxHandle, TxReceipt, ensure_bound
from rolekeeper.ledger.events import EventLookup, EventSpec, find_confirmation

__all__ = [
    "EventLookup",
    "EventSpec",
    "LogEntry",
    "RegistryClient",
    "TxHandle",
    "TxReceipt",
    "ensure_bound",
    "find_confirmation",
]
