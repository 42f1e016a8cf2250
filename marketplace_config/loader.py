"""
Configuration Loader (``marketplace_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into ``schema`` dataclasses.
Callers go through ``marketplace_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad values  -> ``ValueError`` from the schema dataclasses.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from marketplace_config.schema import (
    DatabaseSettings,
    LifecyclePolicy,
    MarketplaceSettings,
    RateLimitPolicy,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_lifecycle(data: dict[str, Any]) -> LifecyclePolicy:
    defaults = LifecyclePolicy()
    return LifecyclePolicy(
        require_delivery_before_completion=bool(
            data.get(
                "require_delivery_before_completion",
                defaults.require_delivery_before_completion,
            )
        ),
        review_comment_min_length=int(
            data.get("review_comment_min_length", defaults.review_comment_min_length)
        ),
        review_comment_max_length=int(
            data.get("review_comment_max_length", defaults.review_comment_max_length)
        ),
        delivery_text_min_length=int(
            data.get("delivery_text_min_length", defaults.delivery_text_min_length)
        ),
        delivery_text_max_length=int(
            data.get("delivery_text_max_length", defaults.delivery_text_max_length)
        ),
        max_bid_amount=Decimal(str(data.get("max_bid_amount", defaults.max_bid_amount))),
        job_max_budget=Decimal(str(data.get("job_max_budget", defaults.job_max_budget))),
    )


def parse_rate_limit(data: dict[str, Any]) -> RateLimitPolicy:
    return RateLimitPolicy(
        action=data["action"],
        max_count=int(data["max_count"]),
        window_seconds=int(data["window_seconds"]),
    )


def parse_settings(data: dict[str, Any]) -> MarketplaceSettings:
    """
    Parse a full settings mapping.

    ``config_id``, ``version`` and ``database.url`` are required; the
    lifecycle section falls back to defaults key by key.
    """
    return MarketplaceSettings(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data["database"]),
        lifecycle=parse_lifecycle(data.get("lifecycle") or {}),
        rate_limits=tuple(parse_rate_limit(r) for r in data.get("rate_limits") or ()),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> MarketplaceSettings:
    return parse_settings(load_yaml_file(path))
