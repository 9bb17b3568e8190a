"""Tests for structured logging."""

import asyncio
import json
import logging
import sys

from traptally.infrastructure.observability.logging import (
    ConsoleFormatter,
    SyncJsonFormatter,
    SyncRunIdFilter,
    configure_logging,
    get_sync_run_id,
    set_sync_playlist_id,
    set_sync_run_id,
    sync_playlist_id_var,
)


class TestSyncRunId:
    """Test sync run id functionality."""

    def test_set_and_get_sync_run_id(self):
        result = set_sync_run_id("run-123")
        assert result == "run-123"
        assert get_sync_run_id() == "run-123"

    def test_set_sync_run_id_generates_uuid_when_none(self):
        result = set_sync_run_id(None)
        assert len(result) == 36
        assert get_sync_run_id() == result

    def test_filter_attaches_sync_run_id(self):
        set_sync_run_id("run-456")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        assert SyncRunIdFilter().filter(record) is True
        assert record.sync_run_id == "run-456"


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_replaces_handlers(self):
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, SyncJsonFormatter)

    def test_text_format_uses_compact_formatter(self):
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)

    def test_third_party_loggers_are_quieted(self):
        configure_logging(log_level="DEBUG", json_format=False)
        assert logging.getLogger("httpx").level == logging.WARNING


class TestFormatters:
    def test_json_record_has_sync_run_id(self):
        formatter = SyncJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "traptally.sync", logging.WARNING, __file__, 42, "Playlist %s skipped", ("p1",), None
        )
        record.sync_run_id = "run-789"

        data = json.loads(formatter.format(record))

        assert data["message"] == "Playlist p1 skipped"
        assert data["level"] == "WARNING"
        assert data["logger"] == "traptally.sync"
        assert data["sync_run_id"] == "run-789"

    def test_compact_exception_shows_root_cause_first(self):
        formatter = ConsoleFormatter("%(message)s")
        try:
            try:
                raise ConnectionError("refused")
            except ConnectionError as inner:
                raise RuntimeError("request failed") from inner
        except RuntimeError:
            text = formatter.formatException(sys.exc_info())

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == [
            "╰─► ConnectionError: refused",
            "╰─► RuntimeError: request failed",
        ]


class TestPlaylistContext:
    async def test_playlist_id_stays_inside_its_task(self):
        async def entry(playlist_id: str) -> str:
            set_sync_playlist_id(playlist_id)
            await asyncio.sleep(0)
            return sync_playlist_id_var.get()

        seen = await asyncio.gather(
            asyncio.create_task(entry("pl-a")), asyncio.create_task(entry("pl-b"))
        )

        assert seen == ["pl-a", "pl-b"]
        assert sync_playlist_id_var.get() == ""

    def test_json_record_has_playlist_id_only_when_set(self):
        formatter = SyncJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.playlist_id = ""
        assert "playlist_id" not in json.loads(formatter.format(record))

        record.playlist_id = "pl-a"
        assert json.loads(formatter.format(record))["playlist_id"] == "pl-a"
