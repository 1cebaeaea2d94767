"""Unit tests for logging setup."""
import logging

from src.utils import logging_utils
from src.utils.logging_utils import configure_logging


def test_configure_logging_adds_single_handler(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(logging_utils, "_configured", False)
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    original_level = root.level
    before = len(root.handlers)

    try:
        configure_logging("debug")
        configure_logging("WARNING")

        assert len(root.handlers) == before + 1
        assert root.level == logging.WARNING
    finally:
        root.setLevel(original_level)


def test_unknown_level_falls_back_to_info(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(logging_utils, "_configured", True)
    original_level = root.level

    try:
        configure_logging("chatty")

        assert root.level == logging.INFO
    finally:
        root.setLevel(original_level)
