"""
Marketplace Kernel - contract lifecycle core

A transactional core for a two-sided services marketplace with:
- A closed job/proposal/contract/delivery state machine
- Atomic proposal acceptance (one accepted proposal per job)
- Atomic contract completion with exactly one review
- Compare-and-set row versioning for concurrent callers
- Typed errors and structured logging
"""

__version__ = "0.1.0"
