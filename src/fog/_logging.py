"""Logging for fog.

The library only attaches a NullHandler to the ``fog`` logger; output is
opt-in through configure_logging(), which sends records to one of:

- stderr: dimmed lines via click.echo, behind a QueueHandler so machine
  code never waits on the terminal
- a LogMux: a dedicated stream, so fog's own messages are coalesced and
  prefixed alongside machine output instead of tearing through it

FOG_LOG_LEVEL (e.g. "DEBUG") sets the library level at import time.

Records carry machine context through ``extra`` (machine_id, machine_name);
the formatter appends it so interleaved machines stay distinguishable:

    INFO [2026-02-25 10:02:54] fog.machine - Starting machine (web 3f9a0c1d2e4b)
"""

from __future__ import annotations

import contextlib
import logging
import logging.handlers
import os
import queue
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from fog.logmux import LogMux, LogStream

LIBRARY_LOGGER_NAME: str = "fog"
LOG_STREAM_NAME: str = "fog"

logging.getLogger(LIBRARY_LOGGER_NAME).addHandler(logging.NullHandler())

_env_level = logging.getLevelNamesMapping().get(os.environ.get("FOG_LOG_LEVEL", "").strip().upper())
if _env_level:  # NOTSET and unknown names leave the level alone
    logging.getLogger(LIBRARY_LOGGER_NAME).setLevel(_env_level)

_FMT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_MACHINE_ID_CHARS = 12
_QUEUE_CAPACITY = 4096

# LogMux reports its own sink failures through logging
_MUX_LOGGER_NAME = f"{LIBRARY_LOGGER_NAME}.logmux"


class MachineFormatter(logging.Formatter):
    """Formatter that appends the machine a record is about, when known."""

    def __init__(self) -> None:
        super().__init__(fmt=_FMT, datefmt=_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        machine_id = getattr(record, "machine_id", None)
        if machine_id is None:
            return msg
        name = getattr(record, "machine_name", None)
        short = str(machine_id)[:_MACHINE_ID_CHARS]
        return f"{msg} ({name} {short})" if name else f"{msg} ({short})"


class _FogHandler(logging.Handler):
    """Marker base: handlers installed by configure_logging()."""

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(MachineFormatter())


class _StderrHandler(_FogHandler):
    """Dimmed records on stderr; click strips the styling off non-TTYs."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(click.style(self.format(record), dim=True), err=True)
        except BlockingIOError:
            pass  # stderr full: drop rather than stall
        except Exception:  # noqa: BLE001
            self.handleError(record)


class _QueuedStderrHandler(logging.handlers.QueueHandler):
    """Hands records to a listener thread that owns the stderr writes."""

    def __init__(self) -> None:
        q: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=_QUEUE_CAPACITY)
        super().__init__(q)
        self._listener = logging.handlers.QueueListener(q, _StderrHandler())
        self._listener.start()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        return record  # same process, nothing to pickle

    def enqueue(self, record: logging.LogRecord) -> None:
        with contextlib.suppress(queue.Full):
            self.queue.put_nowait(record)

    def close(self) -> None:
        self._listener.stop()
        super().close()


class LogStreamHandler(_FogHandler):
    """Writes records as lines into a LogMux stream.

    LogStream.write only buffers, so no queue is needed. Records from the
    mux itself are skipped: a failing sink would otherwise feed its own
    warnings back into the mux.
    """

    def __init__(self, mux: LogMux, stream: LogStream) -> None:
        super().__init__()
        self.mux = mux
        self.stream = stream
        self.addFilter(lambda record: record.name != _MUX_LOGGER_NAME)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(f"{self.format(record)}\n".encode())
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def flush(self) -> None:
        self.stream.flush()


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a fog module (pass ``__name__``)."""
    return logging.getLogger(name)


def _installed(lib_logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in lib_logger.handlers if isinstance(h, (_FogHandler, _QueuedStderrHandler))]


def _make_handler(current: list[logging.Handler], mux: LogMux | None) -> logging.Handler | None:
    """New handler for the requested target, or None if one is already installed."""
    if mux is None:
        if any(isinstance(h, _QueuedStderrHandler) for h in current):
            return None
        return _QueuedStderrHandler()

    if any(isinstance(h, LogStreamHandler) and h.mux is mux for h in current):
        return None
    return LogStreamHandler(mux, mux.stream(LOG_STREAM_NAME))


def configure_logging(
    *,
    level: int | str | None = None,
    quiet: bool = False,
    mux: LogMux | None = None,
) -> None:
    """Send fog's log records somewhere visible.

    Call from application entry points. Repeated calls with the same target
    keep the existing handler; a new target replaces it.

    Args:
        level: Log level (e.g. logging.DEBUG, "WARNING"). Overrides FOG_LOG_LEVEL.
        quiet: Only errors. Takes precedence over level.
        mux: Write records into a "fog" stream of this LogMux instead of
            stderr. The stream name must not be registered yet.

    Raises:
        DuplicateStreamError: ``mux`` already has a "fog" stream from
            another source
    """
    lib_logger = logging.getLogger(LIBRARY_LOGGER_NAME)

    current = _installed(lib_logger)
    handler = _make_handler(current, mux)
    if handler is not None:
        for old in current:
            lib_logger.removeHandler(old)
            old.close()
        lib_logger.addHandler(handler)

    if quiet:
        lib_logger.setLevel(logging.ERROR)
    elif level is not None:
        lib_logger.setLevel(level)
