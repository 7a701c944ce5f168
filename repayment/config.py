"""Configuration and admin access control for the repayment engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from threading import Lock

from .core import (
    EligibilitySource, Identity, IncomeSource, InvalidThresholds,
    LoanTermsSource, TransferExecutor, Unauthorized,
)
from .logging import get_logger

logger = get_logger(__name__)


DEFAULT_ADMIN = "deployer"
DEFAULT_REPAYMENT_THRESHOLD = 20000
DEFAULT_MIN_REPAYMENT_PERCENTAGE = 10
DEFAULT_GRACE_PERIOD_BLOCKS = 144


@dataclass(frozen=True)
class CollaboratorRegistry:
    """The four collaborator endpoints the engine calls."""

    oracle: IncomeSource
    loan_issuance: LoanTermsSource
    borrower_profile: EligibilitySource
    escrow: TransferExecutor


@dataclass(frozen=True)
class ContractConfig:
    """Process-wide repayment parameters.

    Instances are immutable; ConfigStore swaps in a new one on every admin
    mutation, so a snapshot taken at the start of an operation stays
    consistent for its whole duration.
    """

    dependencies: CollaboratorRegistry
    admin: Identity = DEFAULT_ADMIN
    paused: bool = False
    repayment_threshold: int = DEFAULT_REPAYMENT_THRESHOLD
    min_repayment_percentage: int = DEFAULT_MIN_REPAYMENT_PERCENTAGE
    grace_period_blocks: int = DEFAULT_GRACE_PERIOD_BLOCKS
    log_level: str = field(default="INFO", compare=False)

    def __post_init__(self) -> None:
        validate_thresholds(self.repayment_threshold, self.min_repayment_percentage)
        if self.grace_period_blocks < 0:
            raise ValueError(f"grace_period_blocks must be non-negative, got {self.grace_period_blocks}")

    @classmethod
    def from_env(cls, dependencies: CollaboratorRegistry) -> "ContractConfig":
        """Create config from environment variables."""
        return cls(
            dependencies=dependencies,
            admin=os.getenv("REPAYMENT_ADMIN", DEFAULT_ADMIN),
            paused=os.getenv("REPAYMENT_PAUSED", "false").lower() == "true",
            repayment_threshold=int(os.getenv("REPAYMENT_THRESHOLD", str(DEFAULT_REPAYMENT_THRESHOLD))),
            min_repayment_percentage=int(
                os.getenv("REPAYMENT_MIN_PERCENTAGE", str(DEFAULT_MIN_REPAYMENT_PERCENTAGE))
            ),
            grace_period_blocks=int(os.getenv("REPAYMENT_GRACE_PERIOD", str(DEFAULT_GRACE_PERIOD_BLOCKS))),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def validate_thresholds(threshold: int, min_percentage: int) -> None:
    """Raise InvalidThresholds unless threshold > 0 and 0 <= min_percentage <= 100."""
    if threshold <= 0 or not 0 <= min_percentage <= 100:
        raise InvalidThresholds(
            f"threshold must be positive and min_percentage within 0-100, "
            f"got threshold={threshold}, min_percentage={min_percentage}"
        )


class ConfigStore:
    """Holds the current ContractConfig and gates admin mutations.

    Every mutation checks the caller against the admin identity first and
    validates its arguments before anything changes.
    """

    def __init__(self, config: ContractConfig) -> None:
        self._config = config
        self._lock = Lock()

    def snapshot(self) -> ContractConfig:
        """Return the current (immutable) config."""
        with self._lock:
            return self._config

    @property
    def paused(self) -> bool:
        return self.snapshot().paused

    def _require_admin(self, caller: Identity, action: str) -> None:
        if caller != self._config.admin:
            logger.warning("Unauthorized %s attempt by %s", action, caller)
            raise Unauthorized(f"{caller} is not the admin")

    def _mutate(self, caller: Identity, action: str, **changes) -> ContractConfig:
        with self._lock:
            self._require_admin(caller, action)
            self._config = replace(self._config, **changes)
            logger.info("Config %s by %s", action, caller)
            return self._config

    def pause(self, caller: Identity) -> bool:
        """Pause all repayment operations."""
        self._mutate(caller, "pause", paused=True)
        return True

    def unpause(self, caller: Identity) -> bool:
        """Resume repayment operations."""
        self._mutate(caller, "unpause", paused=False)
        return True

    def set_thresholds(self, caller: Identity, threshold: int, min_percentage: int) -> bool:
        """Update the income threshold and collection percentage.

        Raises
        ------
        Unauthorized
            If caller is not the admin.
        InvalidThresholds
            If threshold <= 0 or min_percentage is outside 0-100.
        """
        with self._lock:
            self._require_admin(caller, "set_thresholds")
        validate_thresholds(threshold, min_percentage)
        self._mutate(
            caller,
            "set_thresholds",
            repayment_threshold=threshold,
            min_repayment_percentage=min_percentage,
        )
        return True

    def set_grace_period(self, caller: Identity, grace_period_blocks: int) -> bool:
        """Update the penalty-free window after each cycle."""
        with self._lock:
            self._require_admin(caller, "set_grace_period")
        if grace_period_blocks < 0:
            raise InvalidThresholds(f"grace period must be non-negative, got {grace_period_blocks}")
        self._mutate(caller, "set_grace_period", grace_period_blocks=grace_period_blocks)
        return True

    def update_dependencies(
        self,
        caller: Identity,
        oracle: IncomeSource,
        loan_issuance: LoanTermsSource,
        borrower_profile: EligibilitySource,
        escrow: TransferExecutor,
    ) -> bool:
        """Swap the four collaborator endpoints."""
        registry = CollaboratorRegistry(
            oracle=oracle,
            loan_issuance=loan_issuance,
            borrower_profile=borrower_profile,
            escrow=escrow,
        )
        self._mutate(caller, "update_dependencies", dependencies=registry)
        return True

    def transfer_admin(self, caller: Identity, new_admin: Identity) -> bool:
        """Hand admin rights to another identity."""
        if not new_admin or not new_admin.strip():
            raise ValueError("new_admin cannot be empty")
        self._mutate(caller, "transfer_admin", admin=new_admin)
        return True
