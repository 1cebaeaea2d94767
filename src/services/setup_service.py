"""Provisioning of the roster store tables and counter."""
import logging

from src.models.result import RosterStatus
from src.services.counter_service import SequenceCounter
from src.services.roster_service import get_status
from src.services.storage_service import RosterStore

logger = logging.getLogger(__name__)

SETUP_STEPS = (
    "Set ROSTER_DATA_FILE in your environment or .env file "
    "(defaults to data/roster.json).",
    "Run `python scripts/init-roster-store.py` to create the registrants "
    "and sequence_counter tables.",
    "Optionally pass --start N to begin numbering at N (default 1).",
    "Click \"Check Setup Again\" to reload the kiosk.",
)


def initialize_roster_store(store: RosterStore, start_value: int = 1, reset: bool = False) -> RosterStatus:
    """
    Create the roster tables and seed the sequence counter.

    Safe to run repeatedly: existing registrants and an existing counter are
    kept unless ``reset`` is set.

    Args:
        store: Store to provision
        start_value: First sequence value for a new counter
        reset: Overwrite an existing counter with start_value

    Returns:
        RosterStatus after provisioning

    Raises:
        ValueError: If start_value is not a positive integer
        StoreError: If the store cannot be written
    """
    store.create_tables()
    value = SequenceCounter(store).seed(start_value, reset=reset)
    logger.info("Roster store ready; next sequence value %d", value)
    return get_status(store)
