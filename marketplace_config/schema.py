"""
Configuration Schema (``marketplace_config.schema``).

Responsibility
--------------
Frozen dataclasses describing a marketplace settings file.  These are the
parsed form of the YAML; ``bridges.py`` turns them into kernel inputs.

Architecture position
---------------------
**Config layer** -- pure data definitions.  No I/O and no kernel imports.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* Lengths and counts are checked in ``__post_init__`` so a bad file fails
  at load time rather than on first use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be >= 1")


@dataclass(frozen=True)
class LifecyclePolicy:
    """Tunable bounds of the contract lifecycle."""

    require_delivery_before_completion: bool = True
    review_comment_min_length: int = 10
    review_comment_max_length: int = 1000
    delivery_text_min_length: int = 20
    delivery_text_max_length: int = 5000
    max_bid_amount: Decimal = Decimal("1000000")
    job_max_budget: Decimal = Decimal("10000000")

    def __post_init__(self) -> None:
        if self.review_comment_min_length < 1:
            raise ValueError("review_comment_min_length must be >= 1")
        if self.review_comment_min_length > self.review_comment_max_length:
            raise ValueError("review_comment_min_length exceeds review_comment_max_length")
        if self.delivery_text_min_length > self.delivery_text_max_length:
            raise ValueError("delivery_text_min_length exceeds delivery_text_max_length")
        if self.max_bid_amount <= 0 or self.job_max_budget <= 0:
            raise ValueError("monetary maxima must be positive")


@dataclass(frozen=True)
class RateLimitPolicy:
    action: str
    max_count: int
    window_seconds: int

    def __post_init__(self) -> None:
        if not self.action:
            raise ValueError("rate limit action must not be empty")
        if self.max_count < 1 or self.window_seconds < 1:
            raise ValueError(
                f"rate limit for {self.action} needs max_count and window_seconds >= 1"
            )


@dataclass(frozen=True)
class MarketplaceSettings:
    """The complete, validated settings file."""

    config_id: str
    version: int
    database: DatabaseSettings
    lifecycle: LifecyclePolicy
    rate_limits: tuple[RateLimitPolicy, ...] = ()
    checksum: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        actions = [r.action for r in self.rate_limits]
        if len(actions) != len(set(actions)):
            raise ValueError(f"duplicate rate limit actions in {self.config_id}")

    def rate_limit_for(self, action: str) -> RateLimitPolicy | None:
        for policy in self.rate_limits:
            if policy.action == action:
                return policy
        return None
