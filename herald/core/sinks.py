"""Output sinks for accepted reports.

A sink accepts formatted report lines and supports flush and close. The
console sink backs the DISPLAY action; file sinks back the LOG action.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO, Optional, Union

from rich.console import Console

from herald.models.severity import Severity


class SinkError(Exception):
    """Raised when a sink cannot accept or persist a line.

    Attributes:
        sink: The sink that failed.
    """

    def __init__(self, message: str, sink: Optional["Sink"] = None):
        self.sink = sink
        super().__init__(message)


class Sink:
    """Base class for report sinks."""

    name: str = "sink"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, line: str, severity: Optional[Severity] = None) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        """Push any buffered lines to the destination."""

    def close(self) -> None:
        """Flush and release the destination. Closing twice is a no-op."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.flush()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class ConsoleSink(Sink):
    """Sink writing styled lines to a rich Console (stdout by default).

    Args:
        console: Console to print to. A new stdout console is created when
            omitted.
        color: Whether to style lines by severity.
    """

    name = "console"

    def __init__(self, console: Optional[Console] = None, color: bool = True):
        super().__init__()
        self.console = console if console is not None else Console()
        self.color = color

    def write(self, line: str, severity: Optional[Severity] = None) -> None:
        style = severity.style if (self.color and severity is not None) else None
        with self._lock:
            try:
                # markup=False keeps "[ID]" from being parsed as rich markup
                self.console.print(line, style=style, markup=False, highlight=False, soft_wrap=True)
            except (OSError, ValueError) as e:
                raise SinkError(f"Cannot write to console: {e}", self) from e

    def flush(self) -> None:
        with self._lock:
            try:
                self.console.file.flush()
            except (OSError, ValueError) as e:
                raise SinkError(f"Cannot flush console: {e}", self) from e

    def close(self) -> None:
        # The console outlives the reporter; only flush it
        self.flush()


class FileSink(Sink):
    """Buffered append-mode file sink.

    Lines are collected in memory and written in batches of ``buffer_lines``,
    so a slow disk costs one write per batch. A failed write discards the
    batch, counts the lost lines in ``failed_lines`` and raises SinkError.

    Args:
        path: File to append to, or an already open text stream.
        buffer_lines: Number of lines buffered before a write.
        mode: File open mode ("a" or "w").

    Raises:
        SinkError: If the file cannot be opened.
    """

    def __init__(
        self,
        path: Union[str, Path, IO[str]],
        buffer_lines: int = 64,
        mode: str = "a",
    ):
        super().__init__()
        if buffer_lines < 1:
            raise ValueError("buffer_lines must be at least 1")
        self.buffer_lines = buffer_lines
        self.failed_lines = 0
        self._pending: list[str] = []

        if isinstance(path, (str, Path)):
            self.path: Optional[Path] = Path(path)
            self.name = str(path)
            try:
                self._stream: IO[str] = open(self.path, mode, encoding="utf-8")
            except OSError as e:
                raise SinkError(f"Cannot open log file {self.path}: {e}", self) from e
            self._owns_stream = True
        else:
            self.path = None
            self.name = getattr(path, "name", "stream")
            self._stream = path
            self._owns_stream = False

    def write(self, line: str, severity: Optional[Severity] = None) -> None:
        with self._lock:
            if self._closed:
                raise SinkError(f"Log file {self.name} is closed", self)
            self._pending.append(line)
            if len(self._pending) >= self.buffer_lines:
                self._write_pending()

    def flush(self) -> None:
        with self._lock:
            if self._pending:
                self._write_pending()
            if not self._stream.closed:
                try:
                    self._stream.flush()
                except OSError as e:
                    raise SinkError(f"Cannot flush log file {self.name}: {e}", self) from e

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self.flush()
        finally:
            if self._owns_stream:
                self._stream.close()

    def _write_pending(self) -> None:
        batch = self._pending
        self._pending = []
        try:
            self._stream.write("".join(f"{line}\n" for line in batch))
        except (OSError, ValueError) as e:
            self.failed_lines += len(batch)
            raise SinkError(f"Cannot write to log file {self.name}: {e}", self) from e
