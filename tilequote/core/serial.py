"""
Quotation number generation.
Implements the PTM-YYMMDD-NNN format: issue date plus a random 3-digit suffix.
"""

import random
from datetime import date
from typing import Iterable, Optional

from tilequote.core.exceptions import NumberExhaustedError

QUOTATION_PREFIX = "PTM"
MAX_SUFFIX = 1000


def generate_quotation_number(issue_date: Optional[date] = None,
                              existing: Iterable[str] = (),
                              rng: Optional[random.Random] = None) -> str:
    """
    Generate a quotation number that does not collide with existing ones.

    Args:
        issue_date: Date encoded in the number (defaults to today)
        existing: Numbers already in use
        rng: Random source (tests pass a seeded instance)

    Returns:
        Quotation number string, e.g. PTM-240101-042

    Raises:
        NumberExhaustedError: if every suffix for the date is taken
    """
    if issue_date is None:
        issue_date = date.today()
    rng = rng or random.Random()
    taken = set(existing)

    stem = f"{QUOTATION_PREFIX}-{issue_date.strftime('%y%m%d')}-"
    candidates = list(range(MAX_SUFFIX))
    rng.shuffle(candidates)
    for suffix in candidates:
        number = f"{stem}{suffix:03d}"
        if number not in taken:
            return number

    raise NumberExhaustedError(issue_date)


def is_number_unique(number: str, existing: Iterable[str]) -> bool:
    """True if the number is not already used."""
    return number not in set(existing)


def validate_quotation_number(number: str) -> bool:
    """
    Validate that a quotation number matches PTM-YYMMDD-NNN.

    Args:
        number: Quotation number to validate

    Returns:
        True if the format is valid and the date part is a real date
    """
    if not number:
        return False

    parts = number.split('-')
    if len(parts) != 3:
        return False

    if parts[0] != QUOTATION_PREFIX:
        return False

    date_part, suffix = parts[1], parts[2]
    if len(date_part) != 6 or not date_part.isdigit():
        return False
    try:
        date(2000 + int(date_part[:2]), int(date_part[2:4]), int(date_part[4:]))
    except ValueError:
        return False

    if len(suffix) != 3 or not suffix.isdigit():
        return False

    return True
