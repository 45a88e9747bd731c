"""
Amounts -- validation of currency amounts and endorsement ratings.

Amounts are whole numbers of the smallest currency unit and ratings are
whole numbers; ``bool`` is not accepted for either even though Python
treats it as an ``int``.

Architecture position:
    Kernel > Domain -- pure, no I/O.
"""

from typing import Any

from escrow_kernel.exceptions import InvalidAmountError, InvalidRatingError

MIN_RATING = 0
MAX_RATING = 5


def is_whole_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def ensure_amount(amount: Any, *, minimum: int, reason: str) -> None:
    """
    Raises:
        InvalidAmountError: If amount is not an int or is below ``minimum``.
    """
    if not is_whole_number(amount):
        raise InvalidAmountError(amount, "amount must be a whole number")
    if amount < minimum:
        raise InvalidAmountError(amount, reason)


def ensure_rating(rating: Any) -> None:
    """
    Raises:
        InvalidRatingError: If rating is not an int in [MIN_RATING, MAX_RATING].
    """
    if not is_whole_number(rating) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(rating, MAX_RATING)
