"""Result types returned to the presentation layer."""
from dataclasses import dataclass, field
from typing import List, Optional

from src.models.registrant import Registrant
from src.utils.exceptions import CounterAdvanceWarning, RegistrationError


@dataclass
class RegistrationResult:
    """Outcome of a single registration attempt."""

    success: bool
    registration_code: Optional[str] = None
    registrant: Optional[Registrant] = None
    error: Optional[RegistrationError] = None
    warnings: List[CounterAdvanceWarning] = field(default_factory=list)

    @classmethod
    def ok(cls, registrant: Registrant, warnings: List[CounterAdvanceWarning] = None) -> "RegistrationResult":
        return cls(
            success=True,
            registration_code=registrant.registration_code,
            registrant=registrant,
            warnings=list(warnings or []),
        )

    @classmethod
    def failed(cls, error: RegistrationError) -> "RegistrationResult":
        return cls(success=False, error=error)

    @property
    def message(self) -> str:
        """User-facing message; never carries internal error details."""
        if self.success:
            return f"Registered! Your registration number is {self.registration_code}"
        return self.error.user_message if self.error else RegistrationError.user_message


@dataclass(frozen=True)
class RosterStatus:
    """Setup-check snapshot of the roster store."""

    initialized: bool
    registrant_count: int = 0
    next_sequence_value: int = 1
