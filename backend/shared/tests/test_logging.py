import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _serialize_enums, configure_structlog, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger, then restore the test pipeline."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    configure_structlog()


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "okey"
        log_path = setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir
        assert log_path is not None
        assert log_path.suffix == ".log"

    def test_log_file_named_by_start_time(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path)

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_no_file_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            assert setup_logging(log_dir=tmp_path / "skipped") is None
        assert not (tmp_path / "skipped").exists()

    def test_writes_room_events_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "nested" / "dir")

        structlog.get_logger("test.rooms").info("room created", room_id="ABC123")

        assert log_path is not None
        content = log_path.read_text()
        assert "room created" in content
        assert "ABC123" in content

    def test_repeated_calls_replace_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_noisy_loggers_quieted(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        setup_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_json_mode_produces_valid_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path)

        structlog.contextvars.bind_contextvars(connection_id="conn-1")
        structlog.get_logger("test.json").info("player joined room", room_id="ROOM01", seats=2)
        structlog.contextvars.clear_contextvars()

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "player joined room"
        assert parsed["connection_id"] == "conn-1"
        assert parsed["room_id"] == "ROOM01"
        assert parsed["seats"] == 2

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestSerializeEnums:
    class _Source(Enum):
        DECK = "deck"
        DISCARD = "discard"

    def test_replaces_enum_with_value(self):
        result = _serialize_enums(None, "", {"source": self._Source.DECK, "msg": "hello"})
        assert result == {"source": "deck", "msg": "hello"}

    def test_replaces_enums_inside_dicts_and_lists(self):
        result = _serialize_enums(
            None,
            "",
            {"data": {"source": self._Source.DISCARD, "count": 3}, "sources": [self._Source.DECK, 1]},
        )
        assert result == {"data": {"source": "discard", "count": 3}, "sources": ["deck", 1]}

    def test_leaves_plain_values_unchanged(self):
        assert _serialize_enums(None, "", {"count": 42, "name": "test"}) == {"count": 42, "name": "test"}
