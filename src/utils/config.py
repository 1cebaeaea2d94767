"""Application settings loaded from environment variables and .env."""
import os
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Optional

from src.utils.date_utils import DEFAULT_CODE_PREFIX, DEFAULT_SEQUENCE_WIDTH

SETTING_KEYS = {
    "ROSTER_DATA_FILE",
    "REGISTRATION_CODE_PREFIX",
    "REGISTRATION_SEQUENCE_WIDTH",
    "REGISTRATION_ATOMIC_COUNTER",
    "LOG_LEVEL",
}

_ENV_LOADED = False
_ENV_LOCK = Lock()


@dataclass(frozen=True)
class Settings:
    """Kiosk configuration."""

    data_file: str = "data/roster.json"
    code_prefix: str = DEFAULT_CODE_PREFIX
    sequence_width: int = DEFAULT_SEQUENCE_WIDTH
    atomic_counter: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.code_prefix:
            raise ValueError("Registration code prefix cannot be empty")
        if self.sequence_width < 1:
            raise ValueError("Sequence width must be positive")


def _load_env_file(env_path: Path = Path(".env")) -> None:
    """Load known settings from .env file if present; real env vars win."""
    global _ENV_LOADED

    if _ENV_LOADED:
        return

    with _ENV_LOCK:
        if _ENV_LOADED:
            return

        if env_path.exists():
            for raw_line in env_path.read_text(encoding="utf-8").splitlines():
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"\'')

                if key in SETTING_KEYS and key not in os.environ:
                    os.environ[key] = value

        _ENV_LOADED = True


def _parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """
    Build settings from the environment.

    Returns:
        Settings with defaults for unset variables

    Raises:
        ValueError: If REGISTRATION_SEQUENCE_WIDTH is not an integer
    """
    _load_env_file()

    width = os.getenv("REGISTRATION_SEQUENCE_WIDTH", str(DEFAULT_SEQUENCE_WIDTH))
    try:
        sequence_width = int(width)
    except ValueError as e:
        raise ValueError(f"REGISTRATION_SEQUENCE_WIDTH must be an integer: {width}") from e

    return Settings(
        data_file=os.getenv("ROSTER_DATA_FILE", "data/roster.json"),
        code_prefix=os.getenv("REGISTRATION_CODE_PREFIX", DEFAULT_CODE_PREFIX),
        sequence_width=sequence_width,
        atomic_counter=_parse_bool(os.getenv("REGISTRATION_ATOMIC_COUNTER")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
