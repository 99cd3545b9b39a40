"""
Performance sampling models.

Samples are collected by the resource monitor for the lifetime of one worker
execution and reduced into a PerformanceSummary when the worker finishes or is
cancelled. Raw samples are never persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

_MB = 1024 * 1024


@dataclass(frozen=True)
class PerformanceSample:
    """One reading of the target's memory and CPU usage; either metric may be missing."""
    timestamp: datetime
    memory_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None


@dataclass(frozen=True)
class PerformanceSummary:
    """
    Terminal reduction of a sample stream.

    Fields are None when no sample produced the corresponding metric.
    The all-zero summary (``PerformanceSummary.empty()``) is returned when the
    sampling task could not be stopped in time.
    """
    peak_memory_bytes: Optional[int]
    average_memory_bytes: Optional[float]
    average_cpu_percent: Optional[float]
    sample_count: int

    @classmethod
    def empty(cls) -> "PerformanceSummary":
        return cls(
            peak_memory_bytes=0,
            average_memory_bytes=0.0,
            average_cpu_percent=0.0,
            sample_count=0,
        )

    @classmethod
    def from_samples(cls, samples: Iterable[PerformanceSample]) -> "PerformanceSummary":
        """Reduce samples to peak/average values."""
        samples = list(samples)
        memory = [s.memory_bytes for s in samples if s.memory_bytes is not None]
        cpu = [s.cpu_percent for s in samples if s.cpu_percent is not None]
        return cls(
            peak_memory_bytes=max(memory) if memory else None,
            average_memory_bytes=sum(memory) / len(memory) if memory else None,
            average_cpu_percent=sum(cpu) / len(cpu) if cpu else None,
            sample_count=len(samples),
        )

    @property
    def peak_memory_mb(self) -> Optional[float]:
        if self.peak_memory_bytes is None:
            return None
        return self.peak_memory_bytes / _MB

    @property
    def average_memory_mb(self) -> Optional[float]:
        if self.average_memory_bytes is None:
            return None
        return self.average_memory_bytes / _MB

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "peak_memory_bytes": self.peak_memory_bytes,
            "average_memory_bytes": self.average_memory_bytes,
            "average_cpu_percent": self.average_cpu_percent,
            "sample_count": self.sample_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PerformanceSummary":
        """Deserialize from dictionary."""
        return cls(
            peak_memory_bytes=data.get("peak_memory_bytes"),
            average_memory_bytes=data.get("average_memory_bytes"),
            average_cpu_percent=data.get("average_cpu_percent"),
            sample_count=int(data.get("sample_count", 0)),
        )
