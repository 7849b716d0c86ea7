"""Log multiplexer.

LogMux accepts writes for many named log streams and merges them into a
single sink. Each stream buffers its writes and flushes them as one block
a short window after the first unflushed write, so rapid output from one
stream lands contiguously instead of being chopped up by other streams.

Flushes run on timer threads; LogStream.write never blocks on the sink.

Example:
    mux = LogMux(sys.stdout.buffer, prefix=True)
    web = mux.stream("web")
    web.write(b"listening on :8080\\n")
"""

from __future__ import annotations

import threading
from typing import Protocol

import click

from fog import constants
from fog._logging import get_logger
from fog.colors import Color, happy_color, happy_palette
from fog.exceptions import DuplicateStreamError
from fog.settings import LogSettings

logger = get_logger(__name__)


class ByteSink(Protocol):
    def write(self, data: bytes, /) -> object: ...


class LogStream:
    """An individual log stream of a LogMux.

    Created by LogMux.stream(); lives as long as its mux.
    """

    def __init__(self, mux: LogMux, name: str, color: Color) -> None:
        self._mux = mux
        self._name = name
        self._color = color
        # _buf and _timer are shared between writers and the timer thread
        self._lock = threading.Lock()
        self._buf = bytearray()
        self._timer: threading.Timer | None = None
        # Guarded by the mux sink lock
        self._at_line_start = True

    def __repr__(self) -> str:
        return f"LogStream(name={self._name!r}, color={self._color.hex})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def color(self) -> Color:
        return self._color

    def write(self, data: bytes) -> int:
        """Buffer ``data`` and schedule a flush if none is pending.

        Always accepts the whole input.
        """
        with self._lock:
            self._buf += data
            if self._timer is None:
                self._arm()
        return len(data)

    def flush(self) -> None:
        """Flush all buffered bytes now, cancelling the pending timer."""
        self._flush(whole=True)

    def _arm(self) -> None:
        # Called with _lock held
        self._timer = threading.Timer(self._mux.flush_window, self._window_elapsed)
        self._timer.daemon = True
        self._timer.start()

    def _window_elapsed(self) -> None:
        # Prefixed output only flushes full lines when it can
        self._flush(whole=not self._mux.prefix)

    def _flush(self, *, whole: bool) -> None:
        # Sink lock first: flushes of one stream reach the sink in buffer order
        with self._mux._sink_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()  # no-op when we are the timer
                    self._timer = None
                end = len(self._buf)
                if not whole:
                    last_newline = self._buf.rfind(b"\n")
                    if 0 <= last_newline < end - 1:
                        # Trailing partial line waits one more window
                        end = last_newline + 1
                data = bytes(self._buf[:end])
                del self._buf[:end]
                if self._buf:
                    self._arm()
            if data:
                self._mux._emit(self, data)


class LogMux:
    """A log multiplexer over a single byte sink.

    Attributes:
        flush_window: Coalescing window in seconds (default FOG_LOG_FLUSH_WINDOW_MS)
        prefix: Prefix every flushed line with the stream name in its color
    """

    def __init__(
        self,
        sink: ByteSink,
        *,
        flush_window: float | None = None,
        prefix: bool = False,
        settings: LogSettings | None = None,
    ) -> None:
        if flush_window is None:
            flush_window = (settings or LogSettings()).log_flush_window_ms / 1000
        self.flush_window = flush_window
        self.prefix = prefix
        self._sink = sink
        # Guards _streams and _dirty
        self._lock = threading.Lock()
        self._streams: dict[str, LogStream] = {}
        self._dirty = False
        self._sink_lock = threading.Lock()

    def stream(self, name: str) -> LogStream:
        """Register a new log stream.

        Raises:
            DuplicateStreamError: A stream with this name already exists
        """
        with self._lock:
            if name in self._streams:
                raise DuplicateStreamError(f"Stream {name} already exists", context={"name": name})
            s = LogStream(self, name, happy_color())
            self._streams[name] = s
            self._dirty = True

        logger.debug("Registered log stream", extra={"stream": name, "color": s.color.hex})
        return s

    def names(self) -> list[str]:
        """Registered stream names in registration order."""
        with self._lock:
            return list(self._streams)

    def refresh_colors(self) -> None:
        """Redistribute stream colors across the color space.

        Builds a palette sized to the current stream count and assigns it in
        registration order. No-op unless a stream was registered since the
        last refresh.
        """
        with self._lock:
            if not self._dirty:
                return
            palette = happy_palette(len(self._streams))
            for s, color in zip(self._streams.values(), palette, strict=True):
                s._color = color
            self._dirty = False
            count = len(palette)

        logger.debug("Refreshed log stream colors", extra={"count": count})

    def flush(self) -> None:
        """Flush every stream's pending output now."""
        with self._lock:
            streams = list(self._streams.values())
        for s in streams:
            s.flush()

    def _format(self, stream: LogStream, data: bytes) -> bytes:
        # Called with _sink_lock held
        if not self.prefix:
            return data
        self.refresh_colors()
        label = click.style(
            f"{stream.name}{constants.LOG_PREFIX_SEPARATOR}", fg=stream.color.rgb255, bold=True
        ).encode()

        out = bytearray()
        lines = data.split(b"\n")
        for i, line in enumerate(lines):
            last = i == len(lines) - 1
            if last and not line:
                break
            # A line continued from the previous flush already has its label
            if i > 0 or stream._at_line_start:
                out += label
            out += line
            if not last:
                out += b"\n"
        stream._at_line_start = data.endswith(b"\n")
        return bytes(out)

    def _emit(self, stream: LogStream, data: bytes) -> None:
        # Called with _sink_lock held
        try:
            self._sink.write(self._format(stream, data))
            flush = getattr(self._sink, "flush", None)
            if flush is not None:
                flush()
        except Exception:  # noqa: BLE001
            # Runs on a timer thread with no caller to report to
            logger.warning(
                "Dropped log output: sink write failed",
                extra={"stream": stream.name, "size": len(data)},
                exc_info=True,
            )
