"""Date and registration-code utility functions."""
from datetime import date, datetime
from typing import Optional

DEFAULT_CODE_PREFIX = "K"
DEFAULT_SEQUENCE_WIDTH = 3


def now_iso() -> str:
    """Current local time as an ISO 8601 string with offset."""
    return datetime.now().astimezone().isoformat()


def format_code_date(day: date) -> str:
    """
    Format a date as the yymmdd segment of a registration code.

    Args:
        day: Date or datetime (e.g., 2025-06-13)

    Returns:
        Six digit string (e.g., "250613")
    """
    return day.strftime("%y%m%d")


def format_registration_code(
    sequence: int,
    day: date,
    prefix: str = DEFAULT_CODE_PREFIX,
    width: int = DEFAULT_SEQUENCE_WIDTH,
) -> str:
    """
    Build a registration code.

    Args:
        sequence: Counter value to embed
        day: Registration date
        prefix: Leading letter(s), "K" by default
        width: Minimum zero-padded width of the sequence

    Returns:
        Code such as "K250613007". Sequences wider than ``width`` are not truncated.

    Raises:
        ValueError: If sequence is negative
    """
    if sequence < 0:
        raise ValueError(f"Sequence cannot be negative: {sequence}")
    return f"{prefix}{format_code_date(day)}{sequence:0{width}d}"


def format_timestamp(iso_str: str, fmt: str = "%Y-%m-%d %H:%M") -> str:
    """
    Render an ISO 8601 timestamp for display.

    Returns the input unchanged if it cannot be parsed.
    """
    parsed = parse_timestamp(iso_str)
    return parsed.strftime(fmt) if parsed else iso_str


def parse_timestamp(iso_str: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(iso_str.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None
