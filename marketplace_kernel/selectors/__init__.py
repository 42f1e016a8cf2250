"""Selectors for the marketplace kernel (read side)."""

from marketplace_kernel.selectors.contract_selector import ContractSelector
from marketplace_kernel.selectors.job_selector import JobSelector
from marketplace_kernel.selectors.reputation_selector import ReputationSelector

__all__ = [
    "ContractSelector",
    "JobSelector",
    "ReputationSelector",
]
