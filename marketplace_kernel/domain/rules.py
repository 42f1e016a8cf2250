"""
Rules -- input bounds for every mutating operation.

Responsibility:
    Holds the configurable bounds (``LifecycleRules``) and the pure
    validators that enforce them.  Every user-supplied value is re-validated
    here no matter what the UI already checked.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The config layer
    builds a ``LifecycleRules`` via ``marketplace_config.bridges``; the kernel
    never reads configuration itself.

Failure modes:
    - InvalidFieldError (a ValidationError) naming the offending field.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from marketplace_kernel.exceptions import InvalidFieldError

MONEY_DECIMAL_PLACES = 2
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


def round_money(amount: Decimal) -> Decimal:
    """
    Round a monetary amount to two places, half-up.

    The only sanctioned rounding for money.

    Raises:
        TypeError: If ``amount`` is a float.
    """
    if isinstance(amount, float):
        raise TypeError("Monetary amounts must be Decimal, not float")
    return Decimal(amount).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LifecycleRules:
    """Bounds applied by the services.  Defaults mirror the shipped config."""

    require_delivery_before_completion: bool = True

    rating_min: int = 1
    rating_max: int = 5
    review_comment_min_length: int = 10
    review_comment_max_length: int = 1000

    delivery_text_min_length: int = 20
    delivery_text_max_length: int = 5000

    job_title_min_length: int = 10
    job_title_max_length: int = 200
    job_description_min_length: int = 50
    job_description_max_length: int = 5000
    job_max_budget: Decimal = Decimal("10000000")
    job_max_skills: int = 10

    max_bid_amount: Decimal = Decimal("1000000")
    cover_letter_min_length: int = 50
    cover_letter_max_length: int = 5000
    timeline_max_length: int = 200

    message_max_length: int = 5000

    def __post_init__(self) -> None:
        if self.rating_min > self.rating_max:
            raise ValueError("rating_min must not exceed rating_max")
        for low, high in (
            ("review_comment_min_length", "review_comment_max_length"),
            ("delivery_text_min_length", "delivery_text_max_length"),
            ("job_title_min_length", "job_title_max_length"),
            ("job_description_min_length", "job_description_max_length"),
            ("cover_letter_min_length", "cover_letter_max_length"),
        ):
            if getattr(self, low) > getattr(self, high):
                raise ValueError(f"{low} must not exceed {high}")


@dataclass(frozen=True)
class RateLimit:
    """At most ``max_count`` occurrences of ``action`` per ``window_seconds``."""

    action: str
    max_count: int
    window_seconds: int

    def __post_init__(self) -> None:
        if self.max_count < 1:
            raise ValueError(f"max_count must be >= 1 for {self.action}")
        if self.window_seconds < 1:
            raise ValueError(f"window_seconds must be >= 1 for {self.action}")


DEFAULT_RULES = LifecycleRules()


def validate_text(
    field: str,
    value: object,
    min_length: int,
    max_length: int,
) -> str:
    """Return ``value`` stripped, or raise if it is not a string within bounds."""
    if not isinstance(value, str):
        raise InvalidFieldError(field, "must be a string", value)
    text = value.strip()
    if len(text) < min_length:
        raise InvalidFieldError(
            field, f"must be at least {min_length} characters", len(text)
        )
    if len(text) > max_length:
        raise InvalidFieldError(
            field, f"must be at most {max_length} characters", len(text)
        )
    return text


def validate_rating(rating: object, rules: LifecycleRules = DEFAULT_RULES) -> int:
    # bool is an int subclass; True must not pass as a rating of 1
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidFieldError("rating", "must be an integer", rating)
    if not rules.rating_min <= rating <= rules.rating_max:
        raise InvalidFieldError(
            "rating",
            f"must be between {rules.rating_min} and {rules.rating_max}",
            rating,
        )
    return rating


def validate_review_comment(comment: object, rules: LifecycleRules = DEFAULT_RULES) -> str:
    return validate_text(
        "comment",
        comment,
        rules.review_comment_min_length,
        rules.review_comment_max_length,
    )


def validate_delivery_text(text: object, rules: LifecycleRules = DEFAULT_RULES) -> str:
    return validate_text(
        "delivery_text",
        text,
        rules.delivery_text_min_length,
        rules.delivery_text_max_length,
    )


def validate_amount(field: str, value: object, maximum: Decimal) -> Decimal:
    """
    Parse a positive monetary amount no larger than ``maximum``.

    Accepts Decimal, int or a numeric string.  Floats are rejected outright
    so that binary rounding never reaches a stored amount.
    """
    if isinstance(value, (bool, float)) or not isinstance(value, (Decimal, int, str)):
        raise InvalidFieldError(field, "must be a Decimal, int or numeric string", value)
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise InvalidFieldError(field, "is not a number", value) from None
    if not amount.is_finite():
        raise InvalidFieldError(field, "must be finite", value)
    amount = round_money(amount)
    if amount <= 0:
        raise InvalidFieldError(field, "must be positive", value)
    if amount > maximum:
        raise InvalidFieldError(field, f"must not exceed {maximum}", value)
    return amount


def validate_job_fields(
    title: object,
    description: object,
    category: object,
    budget_min: object,
    budget_max: object,
    skills: tuple[str, ...] | list[str],
    rules: LifecycleRules = DEFAULT_RULES,
) -> tuple[str, str, str, Decimal, Decimal, tuple[str, ...]]:
    """Validate a job posting; return the normalized fields."""
    title_text = validate_text(
        "title", title, rules.job_title_min_length, rules.job_title_max_length
    )
    description_text = validate_text(
        "description",
        description,
        rules.job_description_min_length,
        rules.job_description_max_length,
    )
    category_text = validate_text("category", category, 1, 100)
    low = validate_amount("budget_min", budget_min, rules.job_max_budget)
    high = validate_amount("budget_max", budget_max, rules.job_max_budget)
    if high < low:
        raise InvalidFieldError(
            "budget_max", "must be greater than or equal to budget_min", high
        )

    normalized_skills = tuple(s.strip() for s in skills if isinstance(s, str) and s.strip())
    if len(normalized_skills) != len(tuple(skills)):
        raise InvalidFieldError("skills", "must be non-empty strings", list(skills))
    if len(normalized_skills) > rules.job_max_skills:
        raise InvalidFieldError(
            "skills", f"at most {rules.job_max_skills} skills allowed", len(normalized_skills)
        )
    return title_text, description_text, category_text, low, high, normalized_skills


def validate_proposal_fields(
    bid_amount: object,
    cover_letter: object,
    timeline: object,
    rules: LifecycleRules = DEFAULT_RULES,
) -> tuple[Decimal, str, str | None]:
    """Validate a proposal; return (bid, cover_letter, timeline)."""
    bid = validate_amount("bid_amount", bid_amount, rules.max_bid_amount)
    letter = validate_text(
        "cover_letter",
        cover_letter,
        rules.cover_letter_min_length,
        rules.cover_letter_max_length,
    )
    timeline_text = None
    if timeline is not None:
        timeline_text = validate_text("timeline", timeline, 0, rules.timeline_max_length) or None
    return bid, letter, timeline_text


def validate_message_content(content: object, rules: LifecycleRules = DEFAULT_RULES) -> str:
    return validate_text("content", content, 1, rules.message_max_length)
