"""Transaction boundary and caller policies for the marketplace kernel."""

from marketplace_services.conflict_retry import call_with_conflict_retry
from marketplace_services.orchestrator import MarketplaceOrchestrator

__all__ = ["MarketplaceOrchestrator", "call_with_conflict_retry"]
