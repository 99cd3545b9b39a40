"""
Output sink implementations.

Sinks are injected through the call chain (orchestrator -> supervisor -> test
runner) instead of intercepting console writes globally. Capturing output for
one run means constructing a CapturingOutputSink for that run and closing it
afterwards.
"""

import logging
import sys
import threading
from typing import List, Optional, TextIO

from testorch.domain.interfaces.output_sink import IOutputSink


class NullOutputSink(IOutputSink):
    """Discards everything."""

    def write(self, line: str) -> None:
        return None


class StreamOutputSink(IOutputSink):
    """Writes lines to a text stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None, prefix: str = ""):
        self._stream = stream or sys.stdout
        self._prefix = prefix
        self._lock = threading.Lock()
        self._closed = False

    def write(self, line: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._stream.write(f"{self._prefix}{line}\n")
            self._stream.flush()

    def close(self) -> None:
        with self._lock:
            self._closed = True


class LoggingOutputSink(IOutputSink):
    """Forwards lines to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("testorch.output")
        self._level = level

    def write(self, line: str) -> None:
        self._logger.log(self._level, line)


class CapturingOutputSink(IOutputSink):
    """
    Records lines in memory for the lifetime of one scope.

    Usage:
        with CapturingOutputSink() as sink:
            orchestrator.run(spec, sink=sink)
        print(sink.lines)
    """

    def __init__(self, forward_to: Optional[IOutputSink] = None):
        self._lines: List[str] = []
        self._forward_to = forward_to
        self._lock = threading.Lock()
        self._closed = False

    @property
    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, line: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._lines.append(line)
        if self._forward_to is not None:
            self._forward_to.write(line)

    def text(self) -> str:
        return "\n".join(self.lines)

    def close(self) -> None:
        with self._lock:
            self._closed = True
