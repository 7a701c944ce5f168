"""
engine.py - Repayment Engine

The RepaymentEngine is the orchestrator: it is the only component that
combines collaborator lookups, financial math, ledger mutation and history
appends into one decision.

Operations:
    initialize_loan_repayment(loan_id)
        Validates loan terms and borrower eligibility, then opens a record.
    process_repayment(loan_id, collector)
        Runs one repayment cycle: looks up income and terms, quotes the
        amount due, then either defers (nothing collected) or transfers the
        effective amount from the borrower to the collector.
    calculate_expected_repayment(loan_id, hypothetical_income)
        Same quote as process_repayment, for a caller-supplied income,
        without any side effect.

Every precondition is checked before anything is mutated. A failing
collaborator aborts the operation with no change to the ledger or history.
Each process_repayment call holds its loan's lock from the first read of the
record to the last write, so two cycles on one loan never interleave.
"""

from __future__ import annotations
from threading import Lock
from typing import Optional, Union

from .config import ConfigStore, ContractConfig
from .core import (
    AlreadyRegistered, CollaboratorError, ContractPaused, EligibilitySource,
    Identity, IncomeSource, InvalidAmount, InvalidIncome, InvalidLoan,
    InvalidStatus, LoanDetails, LoanId, LoanRepaymentRecord, LoanTermsSource,
    NotLowIncome, RepaymentHistoryEntry, RepaymentOutcome, RepaymentQuote,
    RepaymentResult, TransferExecutor, TransferFailed,
)
from .financial_math import quote_repayment
from .history import RepaymentHistory
from .logging import get_logger
from .repayment_ledger import RepaymentLedger, apply_deferral, apply_payment

logger = get_logger(__name__)


class RepaymentEngine:
    """
    Income-contingent repayment orchestrator.

    Holds the configuration (including the collaborator endpoints), the
    repayment ledger, the history log and a monotonic block clock.

    Example:
        config = ContractConfig(dependencies=CollaboratorRegistry(
            oracle=StaticIncomeOracle({"borrower1": 25000}),
            loan_issuance=StaticLoanRegistry({1: LoanDetails(10000, 500, 120, 1000, "borrower1")}),
            borrower_profile=StaticBorrowerRegistry({"borrower1": BorrowerStatus(True, True)}),
            escrow=InMemoryEscrow(),
        ))
        engine = RepaymentEngine(config, initial_block=1000)
        engine.initialize_loan_repayment(1)
        engine.advance_blocks(200)
        outcome = engine.process_repayment(1, collector="lender")
        # outcome.result == RepaymentResult.COLLECTED, outcome.amount == 500
    """

    def __init__(
        self,
        config: Union[ContractConfig, ConfigStore],
        ledger: Optional[RepaymentLedger] = None,
        history: Optional[RepaymentHistory] = None,
        initial_block: int = 0,
    ):
        """
        Create an engine.

        Args:
            config: Initial configuration, or an existing ConfigStore to share
            ledger: Record store (a fresh one if not provided)
            history: History log (a fresh one if not provided)
            initial_block: Starting block height
        """
        if initial_block < 0:
            raise ValueError(f"initial_block must be non-negative, got {initial_block}")
        self.config = config if isinstance(config, ConfigStore) else ConfigStore(config)
        self.ledger = ledger if ledger is not None else RepaymentLedger()
        self.history = history if history is not None else RepaymentHistory()
        self._current_block = initial_block
        self._clock_lock = Lock()

    # ========================================================================
    # BLOCK CLOCK
    # ========================================================================

    @property
    def current_block(self) -> int:
        """Current block height."""
        return self._current_block

    def advance_to(self, block: int) -> None:
        """
        Move the block clock to a new height.

        Raises:
            ValueError: If block is below the current height.
        """
        with self._clock_lock:
            if block < self._current_block:
                raise ValueError(f"Cannot move block height backwards: {block} < {self._current_block}")
            self._current_block = block

    def advance_blocks(self, blocks: int) -> None:
        """Move the block clock forward by a number of blocks."""
        if blocks < 0:
            raise ValueError(f"blocks must be non-negative, got {blocks}")
        with self._clock_lock:
            self._current_block += blocks

    # ========================================================================
    # COLLABORATOR ACCESS
    # ========================================================================

    @staticmethod
    def _lookup_loan(config: ContractConfig, loan_id: LoanId) -> LoanDetails:
        try:
            loan = config.dependencies.loan_issuance.get_loan_details(loan_id)
        except CollaboratorError as e:
            raise InvalidLoan(f"Loan terms lookup failed for {loan_id}: {e}") from e
        if loan.principal <= 0 or loan.interest_rate < 0:
            raise InvalidLoan(
                f"Loan {loan_id} has invalid terms: principal={loan.principal}, "
                f"rate={loan.interest_rate}"
            )
        return loan

    @staticmethod
    def _lookup_income(config: ContractConfig, borrower: Identity) -> int:
        try:
            income = config.dependencies.oracle.get_verified_income(borrower)
        except CollaboratorError as e:
            raise InvalidIncome(f"Income lookup failed for {borrower}: {e}") from e
        if not isinstance(income, int) or isinstance(income, bool) or income < 0:
            raise InvalidIncome(f"Oracle returned invalid income for {borrower}: {income!r}")
        return income

    @staticmethod
    def _transfer(config: ContractConfig, source: Identity, dest: Identity, amount: int) -> None:
        try:
            ok = config.dependencies.escrow.transfer_funds(source, dest, amount)
        except CollaboratorError as e:
            raise TransferFailed(f"Transfer of {amount} from {source} to {dest} failed: {e}") from e
        if not ok:
            raise TransferFailed(f"Transfer of {amount} from {source} to {dest} refused")

    @staticmethod
    def _quote(
        config: ContractConfig,
        record: LoanRepaymentRecord,
        loan: LoanDetails,
        income: int,
        block: int,
    ) -> RepaymentQuote:
        if block < record.last_activity_block:
            raise ValueError(f"block {block} precedes last activity {record.last_activity_block}")
        return quote_repayment(
            outstanding=record.outstanding_principal,
            rate=loan.interest_rate,
            elapsed_blocks=block - record.last_activity_block,
            grace_period_blocks=config.grace_period_blocks,
            income=income,
            threshold=config.repayment_threshold,
            min_percentage=config.min_repayment_percentage,
        )

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def initialize_loan_repayment(self, loan_id: LoanId) -> LoanRepaymentRecord:
        """
        Open a repayment record for an issued loan.

        Preconditions are checked in order, each with its own error:
        not paused, loan terms found, borrower profile found, borrower
        active, borrower flagged low-income, loan not yet registered.

        Args:
            loan_id: Loan to open

        Returns:
            The new ACTIVE record

        Raises:
            ContractPaused, InvalidLoan, InvalidStatus, NotLowIncome,
            AlreadyRegistered
        """
        config = self.config.snapshot()
        if config.paused:
            raise ContractPaused("Repayment engine is paused")

        loan = self._lookup_loan(config, loan_id)
        try:
            status = config.dependencies.borrower_profile.get_borrower_status(loan.borrower)
        except CollaboratorError as e:
            raise InvalidLoan(f"Borrower lookup failed for {loan.borrower}: {e}") from e

        if not status.is_active:
            raise InvalidStatus(f"Borrower {loan.borrower} is not active")
        if not status.low_income_flag:
            raise NotLowIncome(f"Borrower {loan.borrower} is not flagged low-income")

        with self.ledger.lock(loan_id):
            if self.config.paused:
                raise ContractPaused("Repayment engine is paused")
            if self.ledger.has(loan_id):
                raise AlreadyRegistered(f"Loan {loan_id} already registered")
            # History first: it raises before the ledger is written.
            self.history.open(loan_id)
            record = self.ledger.create(loan_id, loan.borrower, loan.principal, self.current_block)

        logger.info(
            "Opened repayment for loan %s: borrower=%s principal=%s",
            loan_id, loan.borrower, loan.principal,
            extra={"extra": {"loan_id": loan_id, "principal": loan.principal}},
        )
        return record

    def process_repayment(self, loan_id: LoanId, collector: Identity) -> RepaymentOutcome:
        """
        Run one repayment cycle for a loan.

        Steps:
        1. Reject if paused, unknown loan, or record already terminal
        2. Look up verified income and loan terms
        3. Quote interest, penalty, total due, capacity, effective amount
        4. If the effective amount is 0: record a deferral
        5. Otherwise: transfer it from borrower to collector, then apply it

        Args:
            loan_id: Loan to process
            collector: Identity receiving the payment

        Returns:
            RepaymentOutcome with result COLLECTED or DEFERRED

        Raises:
            ContractPaused, NoActiveLoan, InvalidStatus, InvalidIncome,
            InvalidLoan, CalculationOverflow, TransferFailed. In every case
            nothing has been mutated.
        """
        with self.ledger.lock(loan_id):
            # Read under the loan lock: any pause() that has returned applies here.
            config = self.config.snapshot()
            if config.paused:
                raise ContractPaused("Repayment engine is paused")
            record = self.ledger.require(loan_id)
            if record.status.is_terminal:
                raise InvalidStatus(f"Loan {loan_id} is {record.status.value}")

            income = self._lookup_income(config, record.borrower)
            loan = self._lookup_loan(config, loan_id)
            block = self.current_block
            quote = self._quote(config, record, loan, income, block)
            logger.debug("Quote for loan %s at block %s: %s", loan_id, block, quote)

            if quote.is_deferral:
                new_record = apply_deferral(record, block, quote.interest, quote.penalty)
                entry = RepaymentHistoryEntry(
                    amount=0,
                    block_height=block,
                    income_at_time=income,
                    was_deferred=True,
                    penalty_applied=quote.penalty,
                )
                result = RepaymentResult.DEFERRED
            else:
                self._transfer(config, record.borrower, collector, quote.effective_amount)
                new_record = apply_payment(record, quote.effective_amount, block, quote.penalty)
                entry = RepaymentHistoryEntry(
                    amount=quote.effective_amount,
                    block_height=block,
                    income_at_time=income,
                    was_deferred=False,
                    penalty_applied=quote.penalty,
                )
                result = RepaymentResult.COLLECTED

            sequence = self.history.record(loan_id, entry)
            self.ledger.commit(loan_id, new_record)

        if result == RepaymentResult.DEFERRED:
            logger.info(
                "Deferred loan %s at block %s: no repayment capacity at income %s",
                loan_id, block, income,
                extra={"extra": {"loan_id": loan_id, "block": block, "deferrals": new_record.deferral_count}},
            )
        else:
            logger.info(
                "Collected %s on loan %s at block %s (principal now %s, %s)",
                entry.amount, loan_id, block, new_record.outstanding_principal, new_record.status.value,
                extra={"extra": {"loan_id": loan_id, "block": block, "amount": entry.amount}},
            )

        return RepaymentOutcome(
            loan_id=loan_id,
            result=result,
            amount=entry.amount,
            sequence_number=sequence,
            record=new_record,
            entry=entry,
            quote=quote,
        )

    def calculate_expected_repayment(
        self,
        loan_id: LoanId,
        hypothetical_income: int,
        at_block: Optional[int] = None,
    ) -> RepaymentQuote:
        """
        Forecast a cycle for a hypothetical income without side effects.

        Uses the same quote as process_repayment. Never transfers, never
        writes to the ledger or history.

        Args:
            loan_id: Loan to forecast
            hypothetical_income: Income to assume instead of a live lookup
            at_block: Block to forecast at (default: current block)

        Returns:
            RepaymentQuote; effective_amount is the amount that would be
            collected.

        Raises:
            NoActiveLoan, InvalidAmount (negative income), InvalidLoan,
            CalculationOverflow
        """
        config = self.config.snapshot()
        record = self.ledger.require(loan_id)
        if hypothetical_income < 0:
            raise InvalidAmount(f"hypothetical_income must be non-negative, got {hypothetical_income}")
        loan = self._lookup_loan(config, loan_id)
        block = self.current_block if at_block is None else at_block
        return self._quote(config, record, loan, hypothetical_income, block)

    # ========================================================================
    # READS
    # ========================================================================

    def get_repayment_details(self, loan_id: LoanId) -> Optional[LoanRepaymentRecord]:
        """Return the loan's current record, or None."""
        return self.ledger.get(loan_id)

    def get_repayment_history_entry(self, loan_id: LoanId, sequence_number: int) -> Optional[RepaymentHistoryEntry]:
        """Return one history entry by exact key, or None."""
        return self.history.get_entry(loan_id, sequence_number)

    def get_contract_config(self) -> ContractConfig:
        """Return the current configuration snapshot."""
        return self.config.snapshot()

    # ========================================================================
    # ADMIN
    # ========================================================================

    def pause(self, caller: Identity) -> bool:
        return self.config.pause(caller)

    def unpause(self, caller: Identity) -> bool:
        return self.config.unpause(caller)

    def set_thresholds(self, caller: Identity, threshold: int, min_percentage: int) -> bool:
        return self.config.set_thresholds(caller, threshold, min_percentage)

    def set_grace_period(self, caller: Identity, grace_period_blocks: int) -> bool:
        return self.config.set_grace_period(caller, grace_period_blocks)

    def update_dependencies(
        self,
        caller: Identity,
        oracle: IncomeSource,
        loan_issuance: LoanTermsSource,
        borrower_profile: EligibilitySource,
        escrow: TransferExecutor,
    ) -> bool:
        return self.config.update_dependencies(caller, oracle, loan_issuance, borrower_profile, escrow)

    def transfer_admin(self, caller: Identity, new_admin: Identity) -> bool:
        return self.config.transfer_admin(caller, new_admin)
