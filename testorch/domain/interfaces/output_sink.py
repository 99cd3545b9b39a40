"""
Output Sink Interface.

Output produced during a run (test framework progress, supervisor heartbeats)
is written to an explicitly injected sink instead of patching process-wide
console functions. Starting and stopping capture is constructing and closing
a sink.
"""

from abc import ABC, abstractmethod


class IOutputSink(ABC):
    """Line-oriented output destination."""

    @abstractmethod
    def write(self, line: str) -> None:
        """Write one line (without trailing newline)."""
        ...

    def close(self) -> None:
        """Release resources; further writes are ignored."""
        return None

    def __enter__(self) -> "IOutputSink":
        return self

    def __exit__(self, *args) -> None:
        self.close()
