"""
Config -> Kernel Bridges.

Functions that convert settings into kernel-compatible inputs.  These live
in marketplace_config (the producer) because the kernel must NEVER import
marketplace_config.

Usage:
    from marketplace_config import get_active_config
    from marketplace_config.bridges import build_lifecycle_rules, build_rate_limits

    settings = get_active_config()
    rules = build_lifecycle_rules(settings)
    limits = build_rate_limits(settings)
"""

from __future__ import annotations

from marketplace_config.schema import MarketplaceSettings
from marketplace_kernel.domain.rules import LifecycleRules, RateLimit


def build_lifecycle_rules(settings: MarketplaceSettings) -> LifecycleRules:
    policy = settings.lifecycle
    return LifecycleRules(
        require_delivery_before_completion=policy.require_delivery_before_completion,
        review_comment_min_length=policy.review_comment_min_length,
        review_comment_max_length=policy.review_comment_max_length,
        delivery_text_min_length=policy.delivery_text_min_length,
        delivery_text_max_length=policy.delivery_text_max_length,
        max_bid_amount=policy.max_bid_amount,
        job_max_budget=policy.job_max_budget,
    )


def build_rate_limits(settings: MarketplaceSettings) -> dict[str, RateLimit]:
    """Rate limits keyed by action name."""
    return {
        policy.action: RateLimit(
            action=policy.action,
            max_count=policy.max_count,
            window_seconds=policy.window_seconds,
        )
        for policy in settings.rate_limits
    }
