"""Unit tests for registration_service."""
import logging
import re
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from src.models.counter import COUNTER_ROW_ID
from src.services.counter_service import SequenceCounter
from src.services.registration_service import SequenceAllocator, register_registrant
from src.services.roster_service import list_registrants
from src.services.storage_service import (
    COUNTER_TABLE,
    REGISTRANTS_TABLE,
    InMemoryRosterStore,
    JsonRosterStore,
    RosterStore,
)
from src.utils.config import Settings
from src.utils.exceptions import (
    CounterAdvanceWarning,
    PersistenceError,
    SetupError,
    StoreError,
    ValidationError,
)

CODE_PATTERN = re.compile(r"^K\d{6}\d{3}$")


def fixed_clock(year=2025, month=6, day=13):
    moment = datetime(year, month, day, 10, 30, tzinfo=timezone.utc)
    return lambda: moment


class FailingCounterUpdateStore(InMemoryRosterStore):
    """Store whose counter writes fail; everything else works."""

    def update(self, table, key, values):
        if table == COUNTER_TABLE:
            raise StoreError("counter table is read-only")
        return super().update(table, key, values)


class FailingInsertStore(InMemoryRosterStore):
    """Store whose registrant inserts fail."""

    def insert(self, table, row):
        if table == REGISTRANTS_TABLE:
            raise StoreError("disk full")
        return super().insert(table, row)


class UnlockableStore(InMemoryRosterStore):
    """Store whose exclusive lock cannot be taken."""

    def transaction(self):
        raise StoreError("Cannot lock roster store")


def seeded(store, value=1):
    store.insert(COUNTER_TABLE, {"id": COUNTER_ROW_ID, "counter": value, "updated_at": None})
    return store


def counter_value(store):
    return store.get(COUNTER_TABLE, COUNTER_ROW_ID)["counter"]


@pytest.fixture
def store():
    """Initialized in-memory store with counter at 7."""
    return seeded(InMemoryRosterStore(), 7)


@pytest.fixture
def allocator(store):
    return SequenceAllocator(store, clock=fixed_clock())


class TestRegister:
    """Test SequenceAllocator.register."""

    def test_first_registration_uses_counter_and_date(self, allocator, store):
        """Ama on 2025-06-13 with counter 7 gets K250613007."""
        result = allocator.register("Ama", 8, "girl")

        assert result.success is True
        assert result.registration_code == "K250613007"
        assert result.warnings == []
        assert counter_value(store) == 8
        assert len(list_registrants(store)) == 1

    def test_second_registration_gets_next_code(self, allocator):
        """Kwame right after Ama gets K250613008."""
        allocator.register("Ama", 8, "girl")

        result = allocator.register("Kwame", 10, "boy")

        assert result.registration_code == "K250613008"

    def test_registrant_listed_with_submitted_fields(self, allocator, store):
        result = allocator.register("  Ama  ", "8", "girl")

        listed = list_registrants(store)
        assert listed == [result.registrant]
        assert listed[0].nickname == "Ama"
        assert listed[0].age == 8
        assert listed[0].category == "girl"
        assert listed[0].created_at == "2025-06-13T10:30:00+00:00"

    def test_code_matches_format(self, store):
        allocator = SequenceAllocator(store)

        result = allocator.register("Zara", 12, "other")

        assert CODE_PATTERN.match(result.registration_code)

    def test_sequential_calls_increase_by_one(self, allocator):
        codes = [allocator.register(f"Kid{i}", 5, "other").registration_code for i in range(5)]

        sequences = [int(code[-3:]) for code in codes]
        assert sequences == [7, 8, 9, 10, 11]

    def test_counter_is_not_reset_on_new_day(self, store):
        """Sequence keeps counting across days."""
        SequenceAllocator(store, clock=fixed_clock(day=13)).register("Ama", 8, "girl")

        result = SequenceAllocator(store, clock=fixed_clock(day=14)).register("Kwame", 10, "boy")

        assert result.registration_code == "K250614008"

    def test_sequence_over_999_is_not_truncated(self):
        store = seeded(InMemoryRosterStore(), 1000)

        result = SequenceAllocator(store, clock=fixed_clock()).register("Ama", 8, "girl")

        assert result.registration_code == "K2506131000"

    def test_custom_prefix_and_width(self, store):
        allocator = SequenceAllocator(
            store,
            clock=fixed_clock(),
            settings=Settings(code_prefix="R", sequence_width=5),
        )

        assert allocator.register("Ama", 8, "girl").registration_code == "R25061300007"

    def test_registrant_ids_are_unique(self, allocator, store):
        allocator.register("Ama", 8, "girl")
        allocator.register("Ama", 8, "girl")

        ids = {registrant.id for registrant in list_registrants(store)}
        assert len(ids) == 2


class TestRegisterValidation:
    """Invalid input fails before any store access."""

    @pytest.mark.parametrize("nickname, age, category, message", [
        ("", 8, "boy", "Please enter your nickname!"),
        ("   ", 8, "boy", "Please enter your nickname!"),
        ("Zara", 150, "girl", "Please enter a valid age!"),
        ("Zara", 0, "girl", "Please enter a valid age!"),
        ("Zara", 100, "girl", "Please enter a valid age!"),
        ("Zara", -3, "girl", "Please enter a valid age!"),
        ("Zara", "eight", "girl", "Please enter a valid age!"),
        ("Zara", 8, None, "Please select if you're a boy, girl, or other!"),
        ("Zara", 8, "alien", "Please select if you're a boy, girl, or other!"),
    ])
    def test_invalid_input_returns_validation_error(self, nickname, age, category, message):
        store = MagicMock(spec=RosterStore)
        allocator = SequenceAllocator(store, clock=fixed_clock())

        result = allocator.register(nickname, age, category)

        assert result.success is False
        assert isinstance(result.error, ValidationError)
        assert result.message == message
        assert store.method_calls == []

    def test_empty_nickname_changes_nothing(self, allocator, store):
        allocator.register("", 8, "boy")

        assert counter_value(store) == 7
        assert list_registrants(store) == []

    def test_age_out_of_range_changes_nothing(self, allocator, store):
        allocator.register("Zara", 150, "girl")

        assert counter_value(store) == 7
        assert list_registrants(store) == []

    @pytest.mark.parametrize("age", [1, 99])
    def test_age_bounds_accepted(self, allocator, age):
        assert allocator.register("Zara", age, "girl").success is True

    def test_long_nickname_accepted(self, allocator, store):
        result = allocator.register("A" * 51, 8, "girl")

        assert result.success is True
        assert list_registrants(store)[0].nickname == "A" * 51


class TestRegisterFailures:
    """Store failures map to SetupError / PersistenceError / warnings."""

    def test_uninitialized_store_returns_setup_error(self):
        store = InMemoryRosterStore(initialized=False)

        result = SequenceAllocator(store, clock=fixed_clock()).register("Ama", 8, "girl")

        assert result.success is False
        assert isinstance(result.error, SetupError)
        assert "not set up" in result.message

    def test_missing_counter_row_returns_setup_error(self):
        store = InMemoryRosterStore()

        result = SequenceAllocator(store, clock=fixed_clock()).register("Ama", 8, "girl")

        assert isinstance(result.error, SetupError)
        assert store.list(REGISTRANTS_TABLE) == []

    def test_insert_failure_returns_persistence_error_and_keeps_counter(self):
        store = seeded(FailingInsertStore(), 7)

        result = SequenceAllocator(store, clock=fixed_clock()).register("Ama", 8, "girl")

        assert result.success is False
        assert isinstance(result.error, PersistenceError)
        assert result.message == "Registration failed. Please try again."
        assert "disk full" not in result.message
        assert counter_value(store) == 7
        assert store.list(REGISTRANTS_TABLE) == []

    def test_unexpected_error_returns_persistence_error(self, store):
        allocator = SequenceAllocator(store, clock=fixed_clock())

        with patch.object(store, "insert", side_effect=RuntimeError("boom")):
            result = allocator.register("Ama", 8, "girl")

        assert isinstance(result.error, PersistenceError)
        assert counter_value(store) == 7

    def test_counter_advance_failure_still_succeeds(self, caplog):
        store = seeded(FailingCounterUpdateStore(), 7)
        allocator = SequenceAllocator(store, clock=fixed_clock())

        with caplog.at_level(logging.WARNING, logger="src.services.registration_service"):
            result = allocator.register("Ama", 8, "girl")

        assert result.success is True
        assert result.registration_code == "K250613007"
        assert len(result.warnings) == 1
        assert isinstance(result.warnings[0], CounterAdvanceWarning)
        assert result.warnings[0].counter_value == 7
        assert [r.registration_code for r in list_registrants(store)] == ["K250613007"]

        records = [r for r in caplog.records if getattr(r, "event", None) == "counter_advance_failed"]
        assert len(records) == 1
        assert records[0].registration_code == "K250613007"

    def test_unexpected_advance_error_still_succeeds(self, allocator, store, caplog):
        """A non-store error from advance must not turn a stored registration into a failure."""
        with patch.object(allocator.counter, "advance", side_effect=RuntimeError("driver bug")):
            with caplog.at_level(logging.WARNING, logger="src.services.registration_service"):
                result = allocator.register("Ama", 8, "girl")

        assert result.success is True
        assert result.registration_code == "K250613007"
        assert len(result.warnings) == 1
        assert "driver bug" in str(result.warnings[0])
        assert [r.registration_code for r in list_registrants(store)] == ["K250613007"]
        assert any(getattr(r, "event", None) == "counter_advance_failed" for r in caplog.records)

    def test_counter_advance_failure_reissues_code_on_next_call(self):
        """Known gap: a failed advance makes the next registrant reuse the code."""
        store = seeded(FailingCounterUpdateStore(), 7)
        allocator = SequenceAllocator(store, clock=fixed_clock())

        first = allocator.register("Ama", 8, "girl")
        second = allocator.register("Kwame", 10, "boy")

        assert first.registration_code == second.registration_code == "K250613007"
        assert len(list_registrants(store)) == 2


class TestInjectedCounter:
    """The counter is an explicit collaborator."""

    def test_uses_injected_counter(self, store):
        counter = MagicMock(spec=SequenceCounter)
        counter.peek.return_value = 42
        allocator = SequenceAllocator(store, counter=counter, clock=fixed_clock())

        result = allocator.register("Ama", 8, "girl")

        assert result.registration_code == "K250613042"
        counter.advance.assert_called_once_with(42)


class TestAtomicCounter:
    """Hardened mode runs the allocation under the store lock."""

    def test_atomic_mode_uses_transaction(self, store):
        allocator = SequenceAllocator(store, clock=fixed_clock(), settings=Settings(atomic_counter=True))

        with patch.object(store, "transaction", wraps=store.transaction) as transaction:
            result = allocator.register("Ama", 8, "girl")

        assert result.registration_code == "K250613007"
        assert transaction.called
        assert counter_value(store) == 8

    def test_atomic_mode_uninitialized_store(self):
        allocator = SequenceAllocator(
            InMemoryRosterStore(initialized=False),
            clock=fixed_clock(),
            settings=Settings(atomic_counter=True),
        )

        assert isinstance(allocator.register("Ama", 8, "girl").error, SetupError)

    def test_atomic_mode_lock_failure_returns_setup_error(self):
        store = seeded(UnlockableStore(), 7)
        allocator = SequenceAllocator(store, clock=fixed_clock(), settings=Settings(atomic_counter=True))

        result = allocator.register("Ama", 8, "girl")

        assert result.success is False
        assert isinstance(result.error, SetupError)
        assert "Cannot lock" not in result.message
        assert counter_value(store) == 7
        assert store.list(REGISTRANTS_TABLE) == []

    def test_atomic_mode_lock_failure_on_json_store(self, tmp_path):
        """Taking the lock on a missing data file fails before any read."""
        store = JsonRosterStore(str(tmp_path / "missing" / "roster.json"))
        allocator = SequenceAllocator(store, clock=fixed_clock(), settings=Settings(atomic_counter=True))

        assert isinstance(allocator.register("Ama", 8, "girl").error, SetupError)


class TestRegisterRegistrant:
    """Test the register_registrant convenience wrapper."""

    def test_uses_given_store(self, store):
        result = register_registrant("Ama", 8, "girl", store=store, settings=Settings())

        assert result.success is True
        assert counter_value(store) == 8

    def test_builds_store_from_settings(self, tmp_path):
        settings = Settings(data_file=str(tmp_path / "missing.json"))

        result = register_registrant("Ama", 8, "girl", settings=settings)

        assert isinstance(result.error, SetupError)
