"""Shared sequence counter backed by the roster store."""
import logging
from typing import Callable

from src.models.counter import COUNTER_ROW_ID, CounterRow
from src.services.storage_service import COUNTER_TABLE, RosterStore
from src.utils.date_utils import now_iso
from src.utils.exceptions import RowNotFoundError, StoreError

logger = logging.getLogger(__name__)


class SequenceCounter:
    """
    The next sequence value to embed in a registration code.

    Holds no value of its own; every call goes to the store.
    """

    def __init__(self, store: RosterStore, clock: Callable[[], str] = now_iso):
        self.store = store
        self._clock = clock

    def peek(self) -> int:
        """
        Read the current counter value.

        Raises:
            TableNotFoundError: If the counter table does not exist
            RowNotFoundError: If the counter row has not been seeded
            StoreError: On any other read failure, or a malformed counter row
        """
        row = self.store.get(COUNTER_TABLE, COUNTER_ROW_ID)
        try:
            return CounterRow.from_dict(row).counter
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed counter row {row!r}: {e}") from e

    def advance(self, from_value: int) -> int:
        """
        Write ``from_value + 1`` as the next value.

        Not a compare-and-set: a concurrent writer that read the same value
        is not detected. The counter never moves backwards; a stale
        ``from_value`` leaves the stored value in place.

        Returns:
            The counter value after the call

        Raises:
            StoreError: If the read or the write fails
        """
        next_value = from_value + 1
        with self.store.transaction():
            current = self.peek()
            if current > next_value:
                logger.warning(
                    "Counter already at %d; not moving back to %d",
                    current,
                    next_value,
                    extra={"event": "counter_stale_advance"},
                )
                return current

            self.store.update(
                COUNTER_TABLE,
                COUNTER_ROW_ID,
                {"counter": next_value, "updated_at": self._clock()},
            )
        return next_value

    def seed(self, start_value: int = 1, reset: bool = False) -> int:
        """
        Create the counter row if missing.

        Args:
            start_value: First value to assign
            reset: Overwrite an existing counter (may reissue codes)

        Returns:
            The counter value after seeding

        Raises:
            ValueError: If start_value is not a positive integer
            StoreError: If the counter table is missing or unwritable
        """
        if isinstance(start_value, bool) or not isinstance(start_value, int) or start_value < 1:
            raise ValueError(f"Counter start value must be a positive integer: {start_value!r}")

        with self.store.transaction():
            try:
                current = self.peek()
            except RowNotFoundError:
                row = CounterRow(counter=start_value, updated_at=self._clock())
                self.store.insert(COUNTER_TABLE, row.to_dict())
                logger.info("Seeded sequence counter at %d", start_value)
                return start_value

            if not reset:
                return current

            self.store.update(
                COUNTER_TABLE,
                COUNTER_ROW_ID,
                {"counter": start_value, "updated_at": self._clock()},
            )
            logger.warning("Sequence counter reset from %d to %d", current, start_value)
            return start_value
