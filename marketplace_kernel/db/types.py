"""
Module: marketplace_kernel.db.types
Responsibility: Annotated type aliases and helpers for marketplace column
    types.  Centralizes money precision and the closed-enum status column so
    that every model uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, services/
    and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money columns are Numeric(14, 2).  Rounding to that scale happens in
      domain/rules.py before a value reaches a column.
    - Status columns accept only the members of their enum.  Unknown strings
      are rejected at bind time rather than stored.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated

from sqlalchemy import Enum as SAEnum, Numeric

Amount = Annotated[Decimal, Numeric(14, 2)]


def status_enum(enum_cls: type[Enum], name: str | None = None) -> SAEnum:
    """
    Column type for a closed status enum.

    Stored as VARCHAR holding the member's value (``"in-progress"``, not
    ``"IN_PROGRESS"``) with a CHECK constraint on backends that support it.
    """
    return SAEnum(
        enum_cls,
        name=name or f"ck_{enum_cls.__name__.lower()}",
        native_enum=False,
        create_constraint=True,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
        length=32,
    )
