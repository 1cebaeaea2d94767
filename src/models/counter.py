"""Sequence counter row model."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

COUNTER_ROW_ID = 1


@dataclass(frozen=True)
class CounterRow:
    """Singleton row holding the next sequence value to assign."""

    counter: int
    id: int = COUNTER_ROW_ID
    updated_at: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.counter, bool) or not isinstance(self.counter, int):
            raise ValueError(f"Counter must be an integer, got: {self.counter!r}")
        if self.counter < 1:
            raise ValueError(f"Counter must be positive, got: {self.counter}")

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "counter": self.counter, "updated_at": self.updated_at}

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "CounterRow":
        return cls(
            id=row.get("id", COUNTER_ROW_ID),
            counter=row["counter"],
            updated_at=row.get("updated_at"),
        )
