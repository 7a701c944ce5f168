"""
cycle.py - Batch Repayment Cycles

Runs process_repayment across every open loan at a block height.

Execution order each step():
1. Take the sorted list of loan ids (deterministic order)
2. Skip loans whose record is terminal (PAID, DEFAULTED)
3. Process each remaining loan; a RepaymentError on one loan is recorded
   in the report and does not stop the others

Nothing is retried here. A loan that failed stays untouched until the next
cycle, which is the caller's retry policy.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .core import Identity, LoanId, RepaymentError, RepaymentOutcome, RepaymentResult
from .engine import RepaymentEngine
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class CycleReport:
    """
    What happened to each loan during one cycle.

    Attributes:
        block: Block height the cycle ran at
        outcomes: Loans that reached the decision point, by loan id
        failures: Loans that were rejected, with the error raised
        skipped: Loans not processed because their record is terminal
    """
    block: int
    outcomes: Dict[LoanId, RepaymentOutcome] = field(default_factory=dict)
    failures: Dict[LoanId, RepaymentError] = field(default_factory=dict)
    skipped: List[LoanId] = field(default_factory=list)

    @property
    def collected(self) -> int:
        """Total amount collected across the cycle."""
        return sum(o.amount for o in self.outcomes.values())

    @property
    def deferred(self) -> List[LoanId]:
        return sorted(
            loan_id for loan_id, o in self.outcomes.items()
            if o.result == RepaymentResult.DEFERRED
        )


class RepaymentCycle:
    """
    Processes repayment cycles over all loans held by an engine.

    Example:
        cycle = RepaymentCycle(engine)
        report = cycle.step("lender")
        reports = cycle.run([1144, 1288, 1432], "lender")
    """

    def __init__(self, engine: RepaymentEngine):
        self.engine = engine

    def step(self, collector: Identity, loan_ids: Optional[Iterable[LoanId]] = None) -> CycleReport:
        """
        Process one cycle at the engine's current block.

        Args:
            collector: Identity receiving all payments
            loan_ids: Loans to process (default: every loan with a record)

        Returns:
            CycleReport for this block
        """
        report = CycleReport(block=self.engine.current_block)
        targets = sorted(loan_ids) if loan_ids is not None else self.engine.ledger.loan_ids()

        for loan_id in targets:
            record = self.engine.get_repayment_details(loan_id)
            if record is not None and record.status.is_terminal:
                report.skipped.append(loan_id)
                continue
            try:
                report.outcomes[loan_id] = self.engine.process_repayment(loan_id, collector)
            except RepaymentError as e:
                logger.warning("Loan %s rejected in cycle at block %s: %s (%s)",
                               loan_id, report.block, e, e.code.name)
                report.failures[loan_id] = e

        logger.info(
            "Cycle at block %s: %d processed, %d failed, %d skipped, %d collected",
            report.block, len(report.outcomes), len(report.failures), len(report.skipped), report.collected,
        )
        return report

    def run(
        self,
        block_heights: Iterable[int],
        collector: Identity,
        loan_ids: Optional[Iterable[LoanId]] = None,
    ) -> List[CycleReport]:
        """
        Advance the clock through block_heights, stepping at each one.

        Returns:
            One CycleReport per height
        """
        selected = list(loan_ids) if loan_ids is not None else None
        reports: List[CycleReport] = []
        for height in block_heights:
            self.engine.advance_to(height)
            reports.append(self.step(collector, selected))
        return reports
