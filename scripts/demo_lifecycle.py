#!/usr/bin/env python3
"""
Lifecycle demo: one job from proposals to a reviewed, completed contract.

Runs the reference scenario through MarketplaceOrchestrator against a real
database and checks every expected state along the way:

    1. Client posts job J; two freelancers bid 100 and 150.
    2. Client accepts P1 -> contract C1 (P1 accepted, P2 rejected,
       J in-progress, C1 active for 100).
    3. Client tries to accept P2 -> refused, J is no longer open.
    4. Freelancer submits a delivery on C1.
    5. Client completes C1 with rating 5 -> C1 and J completed, one review.
    6. Client completes C1 again -> refused, still one review.

Usage:
    python3 scripts/demo_lifecycle.py
    python3 scripts/demo_lifecycle.py --database-url sqlite:///demo.db
    python3 scripts/demo_lifecycle.py --config path/to/settings.yaml --verbose

Exit status is 0 when every check passes, 1 otherwise.
"""

import argparse
import logging
import sys
from decimal import Decimal
from uuid import uuid4

from marketplace_config import get_active_config
from marketplace_kernel.db.engine import (
    create_engine_from_url,
    create_session_factory,
    create_tables,
)
from marketplace_kernel.domain.lifecycle import (
    BudgetType,
    ContractStatus,
    DeliveryStatus,
    JobStatus,
    ProposalStatus,
)
from marketplace_kernel.exceptions import PreconditionError
from marketplace_kernel.logging_config import configure_logging
from marketplace_services import MarketplaceOrchestrator

W = 72


def banner(title: str) -> None:
    print()
    print("=" * W)
    print(f"  {title}")
    print("=" * W)


class ScenarioChecks:
    """Collects pass/fail results and prints each as it is recorded."""

    def __init__(self):
        self.failures: list[str] = []

    def expect(self, label: str, actual, expected) -> None:
        ok = actual == expected
        mark = "ok  " if ok else "FAIL"
        print(f"    [{mark}] {label}: {actual}")
        if not ok:
            self.failures.append(f"{label}: expected {expected!r}, got {actual!r}")


def run_scenario(orchestrator: MarketplaceOrchestrator) -> list[str]:
    """Run the scenario and return the list of failed checks."""
    checks = ScenarioChecks()
    client_id, freelancer_1, freelancer_2 = uuid4(), uuid4(), uuid4()

    print("  [1/6] Posting job and collecting two proposals...")
    job = orchestrator.post_job(
        client_id,
        title="Landing page redesign",
        description=(
            "Redesign the marketing landing page with a responsive layout "
            "and an accessible colour palette."
        ),
        category="web-design",
        budget_min=Decimal("100.00"),
        budget_max=Decimal("200.00"),
        budget_type=BudgetType.FIXED,
        skills=["html", "css"],
    )
    cover_letter = (
        "I have shipped a dozen landing pages like this one and can start "
        "right away with a first draft in two days."
    )
    p1 = orchestrator.submit_proposal(job.id, freelancer_1, Decimal("100.00"), cover_letter)
    p2 = orchestrator.submit_proposal(job.id, freelancer_2, Decimal("150.00"), cover_letter)
    checks.expect("J.status", orchestrator.get_job(job.id).status, JobStatus.OPEN)

    print("  [2/6] Accepting P1...")
    contract_id = orchestrator.accept_proposal(job.id, p1.id, client_id)
    contract = orchestrator.get_contract(contract_id)
    checks.expect("P1.status", orchestrator.get_proposal(p1.id).status, ProposalStatus.ACCEPTED)
    checks.expect("P2.status", orchestrator.get_proposal(p2.id).status, ProposalStatus.REJECTED)
    checks.expect("J.status", orchestrator.get_job(job.id).status, JobStatus.IN_PROGRESS)
    checks.expect("C1.status", contract.status, ContractStatus.ACTIVE)
    checks.expect("C1.amount", contract.amount, Decimal("100.00"))

    print("  [3/6] Accepting P2 on the same job...")
    try:
        orchestrator.accept_proposal(job.id, p2.id, client_id)
        checks.expect("second acceptance refused", "accepted", "INVALID_STATUS")
    except PreconditionError as exc:
        checks.expect("second acceptance refused", exc.code, "INVALID_STATUS")
    checks.expect("J.status", orchestrator.get_job(job.id).status, JobStatus.IN_PROGRESS)
    checks.expect("P2.status", orchestrator.get_proposal(p2.id).status, ProposalStatus.REJECTED)

    print("  [4/6] Freelancer submits a delivery...")
    orchestrator.submit_delivery(
        contract_id,
        "Delivered the responsive layout, colour tokens and a style guide.",
        freelancer_1,
    )
    checks.expect(
        "C1.delivery_status",
        orchestrator.get_contract(contract_id).delivery_status,
        DeliveryStatus.DELIVERED,
    )

    print("  [5/6] Client completes the contract with a review...")
    orchestrator.complete_contract(contract_id, 5, "Great work, thank you!", client_id)
    review = orchestrator.review_for_contract(contract_id)
    checks.expect("C1.status", orchestrator.get_contract(contract_id).status, ContractStatus.COMPLETED)
    checks.expect("J.status", orchestrator.get_job(job.id).status, JobStatus.COMPLETED)
    checks.expect("review.rating", review.rating if review else None, 5)
    checks.expect("review.amount", review.amount if review else None, Decimal("100.00"))

    print("  [6/6] Completing the contract a second time...")
    try:
        orchestrator.complete_contract(contract_id, 4, "Second review attempt.", client_id)
        checks.expect("second completion refused", "completed", "INVALID_STATUS")
    except PreconditionError as exc:
        checks.expect("second completion refused", exc.code, "INVALID_STATUS")
    reputation = orchestrator.reputation(freelancer_1)
    checks.expect("freelancer review_count", reputation.review_count, 1)
    checks.expect("freelancer average_rating", reputation.average_rating, Decimal("5.0"))

    return checks.failures


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the marketplace lifecycle demo.")
    parser.add_argument(
        "--database-url",
        help="Database URL (defaults to database.url from the settings file)",
    )
    parser.add_argument("--config", help="Path to a settings YAML file")
    parser.add_argument("--verbose", action="store_true", help="Emit JSON logs to stderr")
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging(level=logging.INFO)

    settings = get_active_config(args.config)
    database_url = args.database_url or settings.database.url

    banner("MARKETPLACE LIFECYCLE DEMO")
    print(f"  database: {database_url}")
    print(f"  settings: {settings.config_id} v{settings.version}")

    engine = create_engine_from_url(
        database_url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )
    try:
        create_tables(engine)
        orchestrator = MarketplaceOrchestrator.from_settings(
            create_session_factory(engine), settings
        )
        failures = run_scenario(orchestrator)
    finally:
        engine.dispose()

    banner("RESULT")
    if failures:
        for failure in failures:
            print(f"  FAIL {failure}")
        return 1
    print("  All checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
