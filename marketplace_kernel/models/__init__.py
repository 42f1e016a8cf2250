"""SQLAlchemy ORM models for the marketplace kernel."""

from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.conversation import Conversation, Message
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.models.rate_limit import RateLimitLog
from marketplace_kernel.models.review import Review

__all__ = [
    "Job",
    "Proposal",
    "Contract",
    "Review",
    "Conversation",
    "Message",
    "RateLimitLog",
]
