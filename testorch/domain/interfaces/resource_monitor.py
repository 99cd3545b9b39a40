"""
Resource Monitor Interface.

A monitor samples one target process from an independent background task.
``start`` returns a handle; ``stop`` turns the handle into a PerformanceSummary
and never blocks for longer than its bounded wait.
"""

from abc import ABC, abstractmethod
from typing import Any

from testorch.domain.models.performance import PerformanceSummary


class IResourceMonitor(ABC):
    """Samples memory/CPU usage of a process while it runs."""

    @abstractmethod
    def start(self, target_pid: int) -> Any:
        """Begin sampling ``target_pid``; return an opaque handle."""
        ...

    @abstractmethod
    def stop(self, handle: Any) -> PerformanceSummary:
        """
        Stop sampling and reduce the samples.

        Returns an all-zero summary if the sampling task does not stop within
        the bounded wait.
        """
        ...
