"""Services for the marketplace kernel (write side)."""

from marketplace_kernel.services.acceptance_service import ProposalAcceptanceService
from marketplace_kernel.services.completion_service import ContractCompletionService
from marketplace_kernel.services.contract_service import ContractService
from marketplace_kernel.services.delivery_service import DeliveryService
from marketplace_kernel.services.job_service import JobService
from marketplace_kernel.services.messaging_service import MessagingService
from marketplace_kernel.services.proposal_service import ProposalService
from marketplace_kernel.services.rate_limit_service import RateLimitService

__all__ = [
    "ContractCompletionService",
    "ContractService",
    "DeliveryService",
    "JobService",
    "MessagingService",
    "ProposalAcceptanceService",
    "ProposalService",
    "RateLimitService",
]
