"""Registration service: issues registration codes and records registrants."""
import logging
import uuid
from contextlib import ExitStack
from datetime import datetime
from typing import Any, Callable, Optional

from src.models.registrant import Registrant
from src.models.result import RegistrationResult
from src.services.counter_service import SequenceCounter
from src.services.storage_service import REGISTRANTS_TABLE, RosterStore, get_store
from src.utils.config import Settings, get_settings
from src.utils.date_utils import format_registration_code
from src.utils.exceptions import (
    CounterAdvanceWarning,
    PersistenceError,
    RegistrationError,
    SetupError,
    StoreError,
    ValidationError,
)
from src.utils.validation import validate_registration

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class SequenceAllocator:
    """
    Issues a registration code per submission and advances the shared counter.

    The allocator keeps no state between calls; the store is the single
    source of truth. With ``settings.atomic_counter`` disabled (the default)
    the counter is read and written back in separate steps, so two
    concurrent submissions can read the same value and receive the same
    code. Enabling it runs read, insert and advance under the store's
    exclusive lock.
    """

    def __init__(
        self,
        store: RosterStore,
        counter: Optional[SequenceCounter] = None,
        clock: Callable[[], datetime] = _local_now,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock
        self.counter = counter or SequenceCounter(store, clock=lambda: self._clock().isoformat())

    def register(self, nickname: Any, age: Any, category: Any) -> RegistrationResult:
        """
        Register an attendee.

        Args:
            nickname: Attendee nickname (trimmed before storing)
            age: Integer age or digit string in [1, 99]
            category: "boy", "girl" or "other"

        Returns:
            RegistrationResult
            - success with the issued code, plus a CounterAdvanceWarning in
              ``warnings`` if the counter could not be advanced
            - failure carrying ValidationError, SetupError or PersistenceError

        Behavior:
            - Re-validates all fields; invalid input performs no store calls
            - Counter read failure or store lock failure -> SetupError
            - Insert failure -> PersistenceError, counter untouched
            - Counter advance failure -> still success; logged at WARNING
        """
        try:
            nickname, age, category = validate_registration(nickname, age, category)
        except ValidationError as e:
            logger.info("Rejected registration: %s", e)
            return RegistrationResult.failed(e)

        try:
            with ExitStack() as stack:
                if self.settings.atomic_counter:
                    try:
                        stack.enter_context(self.store.transaction())
                    except StoreError as e:
                        logger.error("Cannot lock roster store: %s", e)
                        raise SetupError(str(e)) from e
                return self._allocate(nickname, age, category)

        except RegistrationError as e:
            return RegistrationResult.failed(e)
        except StoreError as e:
            logger.error("Store failure during registration: %s", e)
            return RegistrationResult.failed(PersistenceError(str(e)))
        except Exception as e:
            logger.exception("Unexpected error during registration")
            return RegistrationResult.failed(PersistenceError(str(e)))

    def _allocate(self, nickname: str, age: int, category: str) -> RegistrationResult:
        try:
            sequence = self.counter.peek()
        except StoreError as e:
            logger.error("Error fetching counter: %s", e)
            raise SetupError(str(e)) from e

        now = self._clock()
        registrant = Registrant(
            id=uuid.uuid4().hex,
            nickname=nickname,
            age=age,
            category=category,
            registration_code=format_registration_code(
                sequence,
                now.date(),
                prefix=self.settings.code_prefix,
                width=self.settings.sequence_width,
            ),
            created_at=now.isoformat(),
        )

        try:
            self.store.insert(REGISTRANTS_TABLE, registrant.to_dict())
        except StoreError as e:
            logger.error("Error inserting registrant: %s", e)
            raise PersistenceError(str(e)) from e

        warnings = []
        try:
            self.counter.advance(sequence)
        except Exception as e:
            # Registrant is already stored; report success but keep operators informed
            warning = CounterAdvanceWarning(registrant.registration_code, sequence, str(e))
            logger.warning(
                str(warning),
                extra={
                    "event": "counter_advance_failed",
                    "registration_code": registrant.registration_code,
                    "counter_value": sequence,
                },
            )
            warnings.append(warning)

        logger.info("Registered %s with code %s", registrant.nickname, registrant.registration_code)
        return RegistrationResult.ok(registrant, warnings)


def register_registrant(
    nickname: Any,
    age: Any,
    category: Any,
    store: Optional[RosterStore] = None,
    settings: Optional[Settings] = None,
) -> RegistrationResult:
    """
    Register an attendee against the configured roster store.

    Convenience wrapper for the presentation layer; see SequenceAllocator.register.
    """
    settings = settings or get_settings()
    allocator = SequenceAllocator(store or get_store(settings), settings=settings)
    return allocator.register(nickname, age, category)
