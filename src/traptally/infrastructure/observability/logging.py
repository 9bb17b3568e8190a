"""Logging setup for sync runs: JSON or console output tagged with run and playlist ids."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, contextvars follow asyncio tasks. run_full_sync() sets the run id once and
# every TaskGroup worker gets a copy of that context, then sets its own playlist id on top.
# Grep the logs for a run id to see one run end to end, add the playlist id to see one entry.
sync_run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "sync_run_id", default=""
)
sync_playlist_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "sync_playlist_id", default=""
)


def get_sync_run_id() -> str:
    """Current sync run id, or "" outside a run."""
    return sync_run_id_var.get()


def set_sync_run_id(sync_run_id: str | None = None) -> str:
    """Set the run id for the current context, generating a UUID when None.

    Returns:
        The run id that was set
    """
    if sync_run_id is None:
        sync_run_id = str(uuid.uuid4())
    sync_run_id_var.set(sync_run_id)
    return sync_run_id


def set_sync_playlist_id(playlist_id: str) -> None:
    # Only call inside a per-entry task, otherwise the id leaks into sibling log lines
    sync_playlist_id_var.set(playlist_id)


class SyncRunIdFilter(logging.Filter):
    """Attach sync_run_id and playlist_id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.sync_run_id = sync_run_id_var.get()
        record.playlist_id = sync_playlist_id_var.get()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Causes first, the raised exception last. Guards against cycles."""
    seen: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in seen:
        seen.append(current)
        current = current.__cause__ or current.__context__
    return seen[::-1]


class ConsoleFormatter(logging.Formatter):
    """Console output with a short exception chain.

    Only frames from this package are shown, e.g. for a failed playlist fetch:

        12:01:07 │ WARNING │ traptally...catalog_sync_service │ Playlist pl-a failed
        ╰─► ConnectError: All connection attempts failed
        ╰─► ExternalServiceError: Spotify request failed: ...
            File "spotify_client.py", line 137, in _api_request
    """

    package_marker = "traptally"

    def _own_frames(self, exc: BaseException) -> list[str]:
        if exc.__traceback__ is None:
            return []
        lines = []
        for frame in traceback.extract_tb(exc.__traceback__):
            if self.package_marker not in frame.filename or "/site-packages/" in frame.filename:
                continue
            lines.append(
                f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
            )
            if frame.line:
                lines.append(f"      {frame.line.strip()}")
        return lines

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""
        lines: list[str] = []
        for exc in _exception_chain(exc_value):
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            lines.extend(self._own_frames(exc))
        return "\n".join(lines)


class SyncJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line; run/playlist ids only appear when set."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            location=f"{record.module}.{record.funcName}:{record.lineno}",
        )
        # the filter puts both ids on every record and the base class copies record
        # attributes over, so empty ones have to be dropped here
        for key in ("sync_run_id", "playlist_id"):
            value = getattr(record, key, "")
            if value:
                log_record[key] = value
            else:
                log_record.pop(key, None)
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access")


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return SyncJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    return ConsoleFormatter(
        fmt="%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


# Replaces every root handler, so call it once from the app lifespan.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "traptally",
) -> None:
    """Point the root logger at stdout.

    Args:
        log_level: Level name; unknown names fall back to INFO
        json_format: JSON lines for log shipping, console text otherwise
        app_name: Reported in the "Logging configured" record
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SyncRunIdFilter())
    handler.setFormatter(_build_formatter(json_format))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
