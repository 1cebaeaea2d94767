"""Data validation utilities."""
import re
from typing import Any, Tuple

from src.models.registrant import CATEGORIES, MAX_AGE, MIN_AGE
from src.utils.exceptions import ValidationError

NICKNAME_REQUIRED = "Please enter your nickname!"
CATEGORY_REQUIRED = "Please select if you're a boy, girl, or other!"
AGE_INVALID = "Please enter a valid age!"


def validate_nickname(nickname: Any) -> Tuple[bool, str]:
    """
    Validate attendee nickname.

    Args:
        nickname: Nickname to validate (untrimmed)

    Returns:
        Tuple of (is_valid: bool, error_message: str)
        - (True, "") if valid
        - (False, NICKNAME_REQUIRED) if missing or whitespace only
    """
    if not isinstance(nickname, str) or not nickname.strip():
        return False, NICKNAME_REQUIRED
    return True, ""


def validate_category(category: Any) -> Tuple[bool, str]:
    """
    Validate attendee category.

    Returns:
        (True, "") if category is "boy", "girl" or "other",
        otherwise (False, CATEGORY_REQUIRED)
    """
    if category not in CATEGORIES:
        return False, CATEGORY_REQUIRED
    return True, ""


def parse_age(age: Any) -> int:
    """
    Coerce a submitted age to an integer.

    Accepts ints and digit-only strings (form fields arrive as text).

    Raises:
        ValueError: If age is missing, boolean, fractional or non-numeric
    """
    if isinstance(age, bool) or age is None:
        raise ValueError(f"Not an age: {age!r}")
    if isinstance(age, int):
        return age
    if isinstance(age, str) and re.match(r"^\s*\d+\s*$", age):
        return int(age)
    raise ValueError(f"Not an age: {age!r}")


def validate_age(age: Any) -> Tuple[bool, str]:
    """
    Validate attendee age.

    Returns:
        (True, "") if age is an integer in [1, 99], otherwise (False, AGE_INVALID)
    """
    try:
        value = parse_age(age)
    except ValueError:
        return False, AGE_INVALID
    if not MIN_AGE <= value <= MAX_AGE:
        return False, AGE_INVALID
    return True, ""


def validate_registration(nickname: Any, age: Any, category: Any) -> Tuple[str, int, str]:
    """
    Validate a full submission and return its normalized fields.

    Checks run in the same order as the kiosk form: nickname, category, age.

    Returns:
        Tuple of (trimmed nickname, integer age, category)

    Raises:
        ValidationError: With the corrective message for the first failing field
    """
    for is_valid, error_msg in (
        validate_nickname(nickname),
        validate_category(category),
        validate_age(age),
    ):
        if not is_valid:
            raise ValidationError(error_msg)

    return nickname.strip(), parse_age(age), category
