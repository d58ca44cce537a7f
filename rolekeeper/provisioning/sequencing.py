"""Single-writer guard for mutating submissions.

The ledger orders a sender's transactions by a strictly increasing nonce.
Two overlapping submissions from the same sender can collide on a nonce or
silently replace each other, so all mutations go through one sequencer and
an overlap is treated as a programming error.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from rolekeeper.core.errors import ConcurrentSubmissionError


class SubmissionSequencer:
    """Allows exactly one in-flight mutation (submit + confirm) at a time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.submitted = 0

    @contextmanager
    def exclusive(self, description: str = "mutation") -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise ConcurrentSubmissionError(
                f"{description} attempted while another mutation is in flight; "
                "submissions from one sender must be sequential"
            )
        try:
            self.submitted += 1
            yield
        finally:
            self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()
