"""Custom exception classes."""


class RegistrationError(Exception):
    """Base class for errors returned by a registration attempt."""

    user_message = "Registration failed. Please try again."

    def __init__(self, message: str = "", user_message: str = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(RegistrationError):
    """Raised when submission fields fail validation."""

    def __init__(self, message: str):
        # Validation messages are safe to show as-is
        super().__init__(message, user_message=message)


class SetupError(RegistrationError):
    """Raised when the roster store has not been provisioned."""

    user_message = (
        "The registration database is not set up yet. "
        "Please follow the setup steps and try again."
    )


class PersistenceError(RegistrationError):
    """Raised when a read or write against the roster store fails."""
    pass


class StoreError(Exception):
    """Raised by roster stores when an operation cannot be completed."""
    pass


class TableNotFoundError(StoreError):
    """Raised when a table has not been created."""
    pass


class RowNotFoundError(StoreError):
    """Raised when no row matches the requested key."""
    pass


class CounterAdvanceWarning(UserWarning):
    """Registration succeeded but the sequence counter did not advance."""

    def __init__(self, registration_code: str, counter_value: int, reason: str = ""):
        super().__init__(
            f"Counter not advanced past {counter_value} after issuing "
            f"{registration_code}: {reason}"
        )
        self.registration_code = registration_code
        self.counter_value = counter_value
        self.reason = reason
