"""
history.py - Append-Only Repayment History

Every processed cycle of every loan leaves exactly one RepaymentHistoryEntry,
keyed by (loan_id, sequence_number). Sequence numbers come from a per-loan
counter that starts at 0 when the loan is opened and increases by exactly 1
per recorded entry, so the keys for a loan are always 1..counter.

Entries are written once and never overwritten or deleted.
"""

from __future__ import annotations
from threading import Lock
from typing import Dict, Iterator, Optional, Tuple

from .core import AlreadyRegistered, LoanId, NoActiveLoan, RepaymentHistoryEntry


class RepaymentHistory:
    """Per-loan, monotonically indexed audit trail."""

    def __init__(self):
        self._entries: Dict[Tuple[LoanId, int], RepaymentHistoryEntry] = {}
        self._counters: Dict[LoanId, int] = {}
        self._lock = Lock()

    def open(self, loan_id: LoanId) -> None:
        """
        Create a zero-valued counter for loan_id.

        Raises:
            AlreadyRegistered: If loan_id already has a counter.
        """
        with self._lock:
            if loan_id in self._counters:
                raise AlreadyRegistered(f"History for loan {loan_id} already opened")
            self._counters[loan_id] = 0

    def counter(self, loan_id: LoanId) -> int:
        """Return the last allocated sequence number (0 if none)."""
        return self._counters.get(loan_id, 0)

    def record(self, loan_id: LoanId, entry: RepaymentHistoryEntry) -> int:
        """
        Append entry under the next sequence number.

        Returns:
            The sequence number the entry was written under.

        Raises:
            NoActiveLoan: If loan_id was never opened.
        """
        with self._lock:
            if loan_id not in self._counters:
                raise NoActiveLoan(f"No history opened for loan {loan_id}")
            sequence = self._counters[loan_id] + 1
            key = (loan_id, sequence)
            # Counter and keys move together, so the slot is always free.
            assert key not in self._entries
            self._entries[key] = entry
            self._counters[loan_id] = sequence
        return sequence

    def get_entry(self, loan_id: LoanId, sequence_number: int) -> Optional[RepaymentHistoryEntry]:
        """Return the entry at (loan_id, sequence_number), or None."""
        return self._entries.get((loan_id, sequence_number))

    def latest(self, loan_id: LoanId) -> Optional[RepaymentHistoryEntry]:
        """Return the most recent entry for loan_id, or None."""
        return self.get_entry(loan_id, self.counter(loan_id))

    def entries(self, loan_id: LoanId) -> Iterator[Tuple[int, RepaymentHistoryEntry]]:
        """Iterate (sequence_number, entry) pairs for loan_id in order."""
        for sequence in range(1, self.counter(loan_id) + 1):
            yield sequence, self._entries[(loan_id, sequence)]
