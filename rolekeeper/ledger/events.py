"""Typed decoding of the capability confirmation event.

``find_confirmation`` always returns an ``EventLookup``; callers branch on
``lookup.present`` instead of probing for a missing value, so "mined but
no event" is never confused with "event decoded with empty fields".
"""

from __future__ import annotations

from dataclasses import dataclass

from rolekeeper.core.types import ConfirmationEvent
from rolekeeper.ledger.base import LogEntry, TxReceipt


@dataclass(frozen=True)
class EventSpec:
    """Event to look for: its name and keccak topic."""

    name: str
    topic: str


@dataclass(frozen=True)
class EventLookup:
    """Present/absent result of scanning a receipt for an event."""

    event: ConfirmationEvent | None
    logs_scanned: int = 0

    @property
    def present(self) -> bool:
        return self.event is not None

    @classmethod
    def absent(cls, logs_scanned: int) -> "EventLookup":
        return cls(event=None, logs_scanned=logs_scanned)


def _word_to_int(word: str) -> int:
    return int(word, 16) if word and word != "0x" else 0


def _word_to_address(word: str) -> str:
    hex_part = word[2:] if word.startswith("0x") else word
    return "0x" + hex_part[-40:].rjust(40, "0")


def decode_log(log: LogEntry, spec: EventSpec, tx_hash: str, block_number: int) -> ConfirmationEvent:
    """Decode a log already known to match ``spec``.

    The event's first two parameters (identifier, subject) are indexed,
    so they live in topics[1] and topics[2]. Logs from older deployments
    without indexed parameters carry the identifier as the first data word.
    """
    if len(log.topics) >= 2:
        identifier = _word_to_int(log.topics[1])
    else:
        data = log.data[2:] if log.data.startswith("0x") else log.data
        identifier = _word_to_int(data[:64]) if data else 0
    subject = _word_to_address(log.topics[2]) if len(log.topics) >= 3 else ""
    return ConfirmationEvent(
        name=spec.name,
        identifier=identifier,
        subject=subject,
        tx_hash=tx_hash,
        log_index=log.log_index,
        block_number=block_number,
    )


def find_confirmation(
    receipt: TxReceipt,
    spec: EventSpec,
    emitter: str | None = None,
) -> EventLookup:
    """Scan ``receipt`` for the first log matching ``spec``.

    Args:
        receipt: Confirmed transaction receipt.
        spec: Event name and topic to match on topics[0].
        emitter: If given, only logs emitted by this address count.
    """
    topic = spec.topic.lower()
    for log in receipt.logs:
        if not log.topics or log.topics[0].lower() != topic:
            continue
        if emitter and log.address.lower() != emitter.lower():
            continue
        return EventLookup(
            event=decode_log(log, spec, receipt.tx_hash, receipt.block_number),
            logs_scanned=len(receipt.logs),
        )
    return EventLookup.absent(len(receipt.logs))
