#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Income-Contingent Repayment Step by Step

A walk through the repayment engine. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Setup        - Collaborators, configuration, opening loans
  4-6:  Cycles       - Collection, deferral, penalties after the grace period
  7-8:  Forecasting  - Read-only quotes for hypothetical incomes
  9-10: Operations   - Admin controls, batch cycles, rejected operations

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from repayment import (
    # Collaborators
    BorrowerStatus, LoanDetails,
    StaticIncomeOracle, StaticLoanRegistry, StaticBorrowerRegistry,
    InMemoryEscrow,
    # Engine
    RepaymentEngine, RepaymentCycle, ContractConfig, CollaboratorRegistry,
    # Errors
    RepaymentError,
    setup_logging,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_block: int = 1000
    admin: str = "deployer"
    collector: str = "lender"

    # Loan 1: earns above the threshold
    alice_principal: int = 10000
    alice_rate: int = 500           # 5.00%
    alice_income: int = 25000

    # Loan 2: earns below the threshold
    bob_principal: int = 20000
    bob_rate: int = 600             # 6.00%
    bob_income: int = 15000

    cycle_blocks: int = 200
    log_level: str = "WARNING"


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_record(engine: RepaymentEngine, loan_id: int):
    r = engine.get_repayment_details(loan_id)
    print(f"  loan {loan_id}: {r.status.value:<9} principal={r.outstanding_principal:>6} "
          f"paid={r.total_paid:>5} accrued_interest={r.accrued_interest:>5} "
          f"penalty={r.penalty_accrued:>4} deferrals={r.deferral_count}")


# ============================================================================
# PHASE 1: SETUP
# ============================================================================

def step_01_collaborators():
    """Build the four in-memory collaborators."""
    step_header(1, "Collaborators",
        "See the four external systems the engine depends on.")

    print("""
    The engine never owns loans, incomes or money. It asks:

    1. ORACLE           - What is this borrower's verified income?
    2. LOAN ISSUANCE    - What are this loan's terms?
    3. BORROWER PROFILE - Is this borrower active and low-income?
    4. ESCROW           - Move this amount from borrower to collector.
    """)

    oracle = StaticIncomeOracle({"alice": CONFIG.alice_income, "bob": CONFIG.bob_income})
    loans = StaticLoanRegistry({
        1: LoanDetails(CONFIG.alice_principal, CONFIG.alice_rate, 120, CONFIG.start_block, "alice"),
        2: LoanDetails(CONFIG.bob_principal, CONFIG.bob_rate, 240, CONFIG.start_block, "bob"),
        3: LoanDetails(5000, 500, 120, CONFIG.start_block, "carol"),
    })
    profiles = StaticBorrowerRegistry({
        "alice": BorrowerStatus(is_active=True, low_income_flag=True),
        "bob": BorrowerStatus(is_active=True, low_income_flag=True),
        "carol": BorrowerStatus(is_active=True, low_income_flag=False),
    })
    escrow = InMemoryEscrow()

    print(f">>> {oracle!r}")
    print(f">>> {loans!r}")
    print(f">>> {profiles!r}")
    print(f">>> {escrow!r}")

    return CollaboratorRegistry(oracle=oracle, loan_issuance=loans,
                                borrower_profile=profiles, escrow=escrow)


def step_02_engine(registry: CollaboratorRegistry):
    """Create the engine with default parameters."""
    step_header(2, "The Engine",
        "Create a RepaymentEngine and inspect its configuration.")

    config = ContractConfig(dependencies=registry, admin=CONFIG.admin, log_level=CONFIG.log_level)
    setup_logging(config.log_level)
    engine = RepaymentEngine(config, initial_block=CONFIG.start_block)

    c = engine.get_contract_config()
    print(f"Current block:          {engine.current_block}")
    print(f"Admin:                  {c.admin}")
    print(f"Repayment threshold:    {c.repayment_threshold}")
    print(f"Min repayment percent:  {c.min_repayment_percentage}%")
    print(f"Grace period (blocks):  {c.grace_period_blocks}")

    section_header("Key Insight")
    print("""
    Only income ABOVE the threshold is touched, and only a fixed percentage
    of it. A borrower at or below the threshold pays nothing that cycle.
    """)
    return engine


def step_03_open_loans(engine: RepaymentEngine):
    """Open repayment records; see an eligibility rejection."""
    step_header(3, "Opening Loans",
        "Register loans for repayment and see eligibility enforced.")

    for loan_id in (1, 2):
        engine.initialize_loan_repayment(loan_id)
        show_record(engine, loan_id)

    section_header("Carol is not flagged low-income")
    try:
        engine.initialize_loan_repayment(3)
    except RepaymentError as e:
        print(f"  REJECTED: {type(e).__name__} (code {e.code.value}): {e}")
    return engine


# ============================================================================
# PHASE 2: CYCLES
# ============================================================================

def step_04_collection(engine: RepaymentEngine):
    """Advance past the grace period and collect from alice."""
    step_header(4, "Collection",
        "Run a cycle for a borrower above the threshold.")

    engine.advance_blocks(CONFIG.cycle_blocks)
    outcome = engine.process_repayment(1, CONFIG.collector)
    q = outcome.quote

    print(f"Block {engine.current_block}, {q.elapsed_blocks} blocks since last activity")
    print(f"  interest            = {q.interest}")
    print(f"  penalty             = {q.penalty}   ({q.elapsed_blocks} blocks > grace)")
    print(f"  total due           = {q.total_due}")
    print(f"  repayment capacity  = {q.repayment_capacity}")
    print(f"  collected           = {outcome.amount}  (history #{outcome.sequence_number})")
    show_record(engine, 1)
    return engine


def step_05_deferral(engine: RepaymentEngine):
    """Run bob's cycle; his income is below the threshold."""
    step_header(5, "Deferral",
        "See what happens when income gives no repayment capacity.")

    outcome = engine.process_repayment(2, CONFIG.collector)
    print(f"  result: {outcome.result.value}  code: {outcome.code.value}")
    print(f"  interest {outcome.quote.interest} and penalty {outcome.quote.penalty} accrue")
    show_record(engine, 2)

    entry = engine.get_repayment_history_entry(2, outcome.sequence_number)
    print(f"\n  history: amount={entry.amount} income={entry.income_at_time} "
          f"deferred={entry.was_deferred}")
    return engine


def step_06_recovery(engine: RepaymentEngine):
    """Bob's income rises; collection resumes."""
    step_header(6, "Recovery",
        "A deferred loan resumes as soon as income allows.")

    engine.config.snapshot().dependencies.oracle.set_income("bob", 30000)
    engine.advance_blocks(100)
    outcome = engine.process_repayment(2, CONFIG.collector)
    print(f"  within grace: penalty={outcome.quote.penalty}, collected={outcome.amount}")
    show_record(engine, 2)
    return engine


# ============================================================================
# PHASE 3: FORECASTING
# ============================================================================

def step_07_forecast(engine: RepaymentEngine):
    """Quote several incomes without changing anything."""
    step_header(7, "Forecasting",
        "Ask 'what would alice pay at income X?' with no side effects.")

    engine.advance_blocks(CONFIG.cycle_blocks)
    before = engine.get_repayment_details(1)
    for income in (15000, 20000, 25000, 40000, 200000):
        q = engine.calculate_expected_repayment(1, income)
        print(f"  income {income:>7}: would collect {q.effective_amount:>6} of {q.total_due}")
    assert engine.get_repayment_details(1) == before
    print("\n  Record unchanged after forecasting.")
    return engine


def step_08_forecast_vs_live(engine: RepaymentEngine):
    """The live cycle produces exactly the forecast."""
    step_header(8, "Forecast == Live",
        "Confirm forecast and processing share one calculation.")

    forecast = engine.calculate_expected_repayment(1, CONFIG.alice_income)
    outcome = engine.process_repayment(1, CONFIG.collector)
    print(f"  forecast: {forecast.effective_amount}   live: {outcome.amount}")
    print(f"  identical quotes: {forecast == outcome.quote}")
    return engine


# ============================================================================
# PHASE 4: OPERATIONS
# ============================================================================

def step_09_admin(engine: RepaymentEngine):
    """Pause, reject, unpause; non-admins are refused."""
    step_header(9, "Admin Controls",
        "Pause the engine and see access control in action.")

    for caller, action in (("alice", engine.pause), (CONFIG.admin, engine.pause)):
        try:
            action(caller)
            print(f"  {caller}: pause OK")
        except RepaymentError as e:
            print(f"  {caller}: {type(e).__name__}")

    try:
        engine.process_repayment(1, CONFIG.collector)
    except RepaymentError as e:
        print(f"  process while paused: {type(e).__name__}")

    engine.unpause(CONFIG.admin)
    engine.set_thresholds(CONFIG.admin, 10000, 20)
    c = engine.get_contract_config()
    print(f"  thresholds now {c.repayment_threshold} / {c.min_repayment_percentage}%")
    return engine


def step_10_batch(engine: RepaymentEngine):
    """Run several cycles over the whole book."""
    step_header(10, "Batch Cycles",
        "Process every open loan at a series of block heights.")

    start = engine.current_block
    heights = [start + 150 * i for i in range(1, 5)]
    for report in RepaymentCycle(engine).run(heights, CONFIG.collector):
        print(f"  block {report.block}: collected {report.collected:>5}, "
              f"deferred {report.deferred}, failed {sorted(report.failures)}")

    section_header("Final State")
    for loan_id in engine.ledger.loan_ids():
        show_record(engine, loan_id)
    escrow = engine.config.snapshot().dependencies.escrow
    print(f"\n  Escrow moved {escrow.total_transferred()} in {len(escrow.transfers)} transfers")
    return engine


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       INCOME-CONTINGENT REPAYMENT - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    registry = step_01_collaborators()
    wait_for_enter()

    engine = step_02_engine(registry)
    wait_for_enter()

    steps = [
        step_03_open_loans,
        step_04_collection,
        step_05_deferral,
        step_06_recovery,
        step_07_forecast,
        step_08_forecast_vs_live,
        step_09_admin,
        step_10_batch,
    ]
    for step in steps:
        engine = step(engine)
        wait_for_enter()

    print("\nTutorial complete.")


if __name__ == "__main__":
    main()
