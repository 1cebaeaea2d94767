"""Registrant data model for the kiosk roster."""
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict

CATEGORIES = ("boy", "girl", "other")

CATEGORY_LABELS = {
    "boy": "Boy",
    "girl": "Girl",
    "other": "Other",
}

MIN_AGE = 1
MAX_AGE = 99


@dataclass(frozen=True)
class Registrant:
    """Person registered at the kiosk."""

    id: str
    nickname: str
    age: int
    category: str
    registration_code: str
    created_at: str  # ISO 8601 format

    def __post_init__(self):
        """Validate registrant data."""
        if not self.id or not str(self.id).strip():
            raise ValueError("Registrant ID cannot be empty")

        if not self.nickname or not self.nickname.strip():
            raise ValueError("Nickname cannot be empty")

        if isinstance(self.age, bool) or not isinstance(self.age, int):
            raise ValueError(f"Age must be an integer, got: {self.age!r}")
        if not MIN_AGE <= self.age <= MAX_AGE:
            raise ValueError(f"Age must be between {MIN_AGE} and {MAX_AGE}, got: {self.age}")

        if self.category not in CATEGORIES:
            raise ValueError(f"Category must be one of {list(CATEGORIES)}, got: {self.category}")

        if not self.registration_code:
            raise ValueError("Registration code cannot be empty")

        try:
            datetime.fromisoformat(self.created_at.replace('Z', '+00:00'))
        except ValueError as e:
            raise ValueError(f"Invalid timestamp format: {self.created_at}") from e

    @property
    def category_label(self) -> str:
        return CATEGORY_LABELS[self.category]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a store row."""
        return asdict(self)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Registrant":
        """Build a registrant from a store row, ignoring unknown columns."""
        return cls(
            id=row["id"],
            nickname=row["nickname"],
            age=row["age"],
            category=row["category"],
            registration_code=row["registration_code"],
            created_at=row["created_at"],
        )
