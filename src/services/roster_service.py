"""Roster queries for the kiosk display."""
import logging
from datetime import date
from typing import List, Optional

from src.models.registrant import Registrant
from src.models.result import RosterStatus
from src.services.counter_service import SequenceCounter
from src.services.storage_service import REGISTRANTS_TABLE, RosterStore
from src.utils.config import Settings
from src.utils.date_utils import format_registration_code
from src.utils.exceptions import StoreError

logger = logging.getLogger(__name__)


def list_registrants(store: RosterStore, newest_first: bool = False) -> List[Registrant]:
    """
    Get all registrants in the order they were stored.

    Args:
        store: Roster store to read from
        newest_first: Reverse the order (latest registration first)

    Returns:
        List of Registrant objects.
        Empty list if the store is missing or fails; the failure is logged.
        Rows that cannot be parsed are skipped and logged.
    """
    try:
        rows = store.list(REGISTRANTS_TABLE, descending=newest_first)
    except StoreError as e:
        logger.warning(
            "Error fetching registrants: %s",
            e,
            extra={"event": "roster_list_failed"},
        )
        return []

    registrants = []
    for row in rows:
        try:
            registrants.append(Registrant.from_dict(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping malformed registrant row %r: %s",
                row.get("id"),
                e,
                extra={"event": "roster_row_invalid"},
            )
    return registrants


def get_status(store: RosterStore) -> RosterStatus:
    """
    Check whether the roster store is set up and what the next sequence is.

    Returns:
        RosterStatus; ``initialized`` is False (count 0, next value 1) when
        tables or the counter row are missing or the store cannot be read.
    """
    try:
        if not store.is_initialized():
            return RosterStatus(initialized=False)
        next_value = SequenceCounter(store).peek()
        count = len(store.list(REGISTRANTS_TABLE))
    except StoreError as e:
        logger.warning(
            "Roster status check failed: %s",
            e,
            extra={"event": "roster_status_failed"},
        )
        return RosterStatus(initialized=False)

    return RosterStatus(
        initialized=True,
        registrant_count=count,
        next_sequence_value=next_value,
    )


def preview_registration_code(
    status: RosterStatus,
    today: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Code the next registration would receive if nobody registers first.

    Args:
        status: Result of get_status
        today: Date to stamp (defaults to today)
        settings: Code prefix and width (defaults to Settings())
    """
    settings = settings or Settings()
    return format_registration_code(
        status.next_sequence_value,
        today or date.today(),
        prefix=settings.code_prefix,
        width=settings.sequence_width,
    )
