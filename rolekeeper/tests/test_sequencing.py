"""Tests for the single-writer submission guard."""

from __future__ import annotations

import pytest

from rolekeeper.core.errors import ConcurrentSubmissionError
from rolekeeper.provisioning.sequencing import SubmissionSequencer


class TestSubmissionSequencer:
    def test_sequential_use(self):
        seq = SubmissionSequencer()
        with seq.exclusive("first"):
            assert seq.busy
        with seq.exclusive("second"):
            pass
        assert seq.submitted == 2
        assert not seq.busy

    def test_overlap_is_rejected(self):
        seq = SubmissionSequencer()
        with seq.exclusive("first"):
            with pytest.raises(ConcurrentSubmissionError, match="second"):
                with seq.exclusive("second"):
                    pass
        assert seq.submitted == 1

    def test_released_after_error(self):
        seq = SubmissionSequencer()
        with pytest.raises(ValueError):
            with seq.exclusive():
                raise ValueError("boom")
        assert not seq.busy
