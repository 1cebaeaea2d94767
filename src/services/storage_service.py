"""Roster store: generic table persistence over JSON files or memory."""
import copy
import json
import os
import shutil
import sys
import tempfile
import threading
import time
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Iterator, List, Optional

from src.utils.config import Settings, get_settings
from src.utils.exceptions import RowNotFoundError, StoreError, TableNotFoundError

if sys.platform != "win32":
    import fcntl

REGISTRANTS_TABLE = "registrants"
COUNTER_TABLE = "sequence_counter"
TABLES = (REGISTRANTS_TABLE, COUNTER_TABLE)

KEY_COLUMN = "id"


def load_json(file_path: str, retry_count: int = 3, retry_delay: float = 0.1) -> Dict[str, Any]:
    """
    Load and parse JSON file with UTF-8 encoding.

    Args:
        file_path: Path to JSON file
        retry_count: Number of retry attempts for permission errors (default: 3)
        retry_delay: Delay in seconds between retries (default: 0.1)

    Returns:
        dict: Parsed JSON content

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If JSON is malformed
        PermissionError: If file not readable after retries
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    for attempt in range(retry_count):
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except PermissionError:
            if attempt < retry_count - 1:
                time.sleep(retry_delay)
                continue
        except json.JSONDecodeError as e:
            raise json.JSONDecodeError(
                f"Malformed JSON in {file_path}: {e.msg}",
                e.doc,
                e.pos
            )

    raise PermissionError(f"Cannot read file after {retry_count} attempts: {file_path}")


def save_json(file_path: str, data: Dict[str, Any], backup: bool = True) -> None:
    """
    Save data to JSON file atomically with UTF-8 encoding.

    Writes to a temp file in the same directory, fsyncs, then renames over
    the target so readers never see a partial document.

    Raises:
        IOError: If backup or write fails
    """
    dir_path = os.path.dirname(file_path)
    if dir_path and not os.path.exists(dir_path):
        os.makedirs(dir_path, exist_ok=True)

    if backup and os.path.exists(file_path):
        try:
            shutil.copy2(file_path, f"{file_path}.backup")
        except OSError as e:
            raise IOError(f"Failed to create backup: {e}")

    temp_fd, temp_path = tempfile.mkstemp(
        dir=dir_path if dir_path else ".",
        prefix=".tmp_",
        suffix=".json"
    )

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, file_path)
    except Exception as e:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise IOError(f"Failed to write file {file_path}: {e}")


@contextmanager
def lock_file(file_path: str, timeout: float = 5.0):
    """
    Context manager for exclusive cross-process file locking.

    Usage:
        with lock_file('data/roster.json'):
            data = load_json('data/roster.json')
            ...
            save_json('data/roster.json', data)

    Raises:
        TimeoutError: If unable to acquire lock within timeout
        FileNotFoundError: If file doesn't exist
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Cannot lock non-existent file: {file_path}")

    # Windows has no flock; use an O_EXCL sidecar lock file instead
    if sys.platform == "win32":
        lock_file_path = f"{file_path}.lock"
        start_time = time.time()

        while True:
            try:
                lock_fd = os.open(lock_file_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
                break
            except FileExistsError:
                if time.time() - start_time > timeout:
                    raise TimeoutError(f"Could not acquire lock on {file_path} within {timeout}s")
                time.sleep(0.05)

        try:
            yield
        finally:
            os.close(lock_fd)
            try:
                os.remove(lock_file_path)
            except FileNotFoundError:
                pass
    else:
        # Lock a sidecar file: save_json replaces the data file's inode
        lock_fd = open(f"{file_path}.lock", "a+")
        try:
            start_time = time.time()
            while True:
                try:
                    fcntl.flock(lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except OSError:
                    if time.time() - start_time > timeout:
                        raise TimeoutError(f"Could not acquire lock on {file_path} within {timeout}s")
                    time.sleep(0.05)

            try:
                yield
            finally:
                fcntl.flock(lock_fd.fileno(), fcntl.LOCK_UN)
        finally:
            lock_fd.close()


def _check_tables(tables: Any, source: str) -> Dict[str, List[Dict[str, Any]]]:
    """Raise StoreError unless ``tables`` maps names to lists of row dicts."""
    if not isinstance(tables, dict):
        raise StoreError(f"Roster data has no tables: {source}")
    for name, rows in tables.items():
        if not isinstance(rows, list):
            raise StoreError(f"Table {name} is not a list of rows: {source}")
        if not all(isinstance(row, dict) for row in rows):
            raise StoreError(f"Table {name} contains non-row entries: {source}")
    return tables


class RosterStore:
    """
    Generic table store used by the registration core.

    Every table is a list of row dicts keyed by their ``id`` column.
    Subclasses implement ``_read_tables``/``_write_tables`` and ``_locked``.
    """

    def get(self, table: str, key: Any) -> Dict[str, Any]:
        """
        Read one row by key.

        Raises:
            TableNotFoundError: If the table has not been created
            RowNotFoundError: If no row has that key
        """
        with self._locked():
            rows = self._table(self._read_tables(), table)
            for row in rows:
                if row.get(KEY_COLUMN) == key:
                    return copy.deepcopy(row)
        raise RowNotFoundError(f"No row with {KEY_COLUMN}={key!r} in {table}")

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append a row.

        Raises:
            TableNotFoundError: If the table has not been created
            StoreError: If the row has no key or the key already exists
        """
        if KEY_COLUMN not in row:
            raise StoreError(f"Row for {table} is missing '{KEY_COLUMN}'")

        with self._locked():
            tables = self._read_tables()
            rows = self._table(tables, table)
            if any(existing.get(KEY_COLUMN) == row[KEY_COLUMN] for existing in rows):
                raise StoreError(f"Duplicate {KEY_COLUMN}={row[KEY_COLUMN]!r} in {table}")
            rows.append(copy.deepcopy(row))
            self._write_tables(tables)
        return copy.deepcopy(row)

    def update(self, table: str, key: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update columns of the row with the given key. The key itself is immutable.

        Raises:
            TableNotFoundError: If the table has not been created
            RowNotFoundError: If no row has that key
        """
        with self._locked():
            tables = self._read_tables()
            for row in self._table(tables, table):
                if row.get(KEY_COLUMN) == key:
                    for column, value in values.items():
                        if column != KEY_COLUMN:
                            row[column] = value
                    self._write_tables(tables)
                    return copy.deepcopy(row)
        raise RowNotFoundError(f"No row with {KEY_COLUMN}={key!r} in {table}")

    def list(self, table: str, descending: bool = False) -> List[Dict[str, Any]]:
        """
        Return all rows of a table in insertion (creation) order.

        Rows are appended on insert, so stored order is creation order
        regardless of the UTC offsets in their timestamps.

        Raises:
            TableNotFoundError: If the table has not been created
        """
        with self._locked():
            rows = copy.deepcopy(self._table(self._read_tables(), table))
        if descending:
            rows.reverse()
        return rows

    def is_initialized(self) -> bool:
        """True when every roster table exists."""
        try:
            with self._locked():
                tables = self._read_tables()
        except StoreError:
            return False
        return all(name in tables for name in TABLES)

    def create_tables(self) -> None:
        """Create missing roster tables; existing tables are left untouched."""
        raise NotImplementedError

    @contextmanager
    def transaction(self) -> Iterator["RosterStore"]:
        """Hold the store's exclusive lock across several operations."""
        with self._locked():
            yield self

    @staticmethod
    def _table(tables: Dict[str, List[Dict[str, Any]]], table: str) -> List[Dict[str, Any]]:
        if table not in tables:
            raise TableNotFoundError(f"Table does not exist: {table}")
        return tables[table]

    def _read_tables(self) -> Dict[str, List[Dict[str, Any]]]:
        raise NotImplementedError

    def _write_tables(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        raise NotImplementedError

    def _locked(self):
        raise NotImplementedError


class InMemoryRosterStore(RosterStore):
    """Process-local store for tests and demos."""

    def __init__(self, initialized: bool = True):
        self._tables: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        if initialized:
            self.create_tables()

    def create_tables(self) -> None:
        with self._lock:
            for name in TABLES:
                self._tables.setdefault(name, [])

    @contextmanager
    def _locked(self):
        with self._lock:
            yield

    def _read_tables(self) -> Dict[str, List[Dict[str, Any]]]:
        return self._tables

    def _write_tables(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        self._tables = tables


class JsonRosterStore(RosterStore):
    """
    Store backed by a single JSON document::

        {"tables": {"registrants": [...], "sequence_counter": [...]}}

    Each operation locks the file, reloads it and writes it back atomically,
    so several kiosk processes can share one file.
    """

    def __init__(self, file_path: str, lock_timeout: float = 5.0):
        self.file_path = file_path
        self.lock_timeout = lock_timeout
        self._thread_lock = threading.RLock()
        self._local = threading.local()

    def create_tables(self) -> None:
        if not os.path.exists(self.file_path):
            try:
                save_json(self.file_path, {"tables": {}}, backup=False)
            except IOError as e:
                raise StoreError(str(e)) from e

        with self._locked():
            tables = self._read_tables()
            for name in TABLES:
                tables.setdefault(name, [])
            self._write_tables(tables)

    @contextmanager
    def _locked(self):
        depth = getattr(self._local, "depth", 0)
        if depth:
            # Re-entrant use inside transaction(); lock already held
            self._local.depth = depth + 1
            try:
                yield
            finally:
                self._local.depth = depth
            return

        if not os.path.exists(self.file_path):
            raise TableNotFoundError(f"Roster data file not found: {self.file_path}")

        with self._thread_lock, ExitStack() as stack:
            try:
                stack.enter_context(lock_file(self.file_path, timeout=self.lock_timeout))
            except (TimeoutError, OSError) as e:
                raise StoreError(f"Cannot lock {self.file_path}: {e}") from e

            self._local.depth = 1
            try:
                yield
            finally:
                self._local.depth = 0

    def _read_tables(self) -> Dict[str, List[Dict[str, Any]]]:
        try:
            data = load_json(self.file_path)
        except FileNotFoundError as e:
            raise TableNotFoundError(str(e)) from e
        except (ValueError, OSError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError
            raise StoreError(f"Cannot read roster data: {e}") from e

        tables = data.get("tables", {}) if isinstance(data, dict) else None
        return _check_tables(tables, self.file_path)

    def _write_tables(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            save_json(self.file_path, {"tables": tables}, backup=True)
        except IOError as e:
            raise StoreError(str(e)) from e


def get_store(settings: Optional[Settings] = None) -> RosterStore:
    """Build the JSON store configured by ROSTER_DATA_FILE."""
    settings = settings or get_settings()
    return JsonRosterStore(settings.data_file)
