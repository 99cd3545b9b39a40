"""
Baseline document storage.

A baseline is one JSON document, overwritten wholesale on regeneration. The
overwrite goes through a temporary file in the same directory so readers see
either the old or the new document, never a partial one.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from testorch.domain.errors import BaselineError
from testorch.domain.models.baseline import (
    BaselinePerformance,
    BaselineRecord,
    EnvironmentInfo,
    TestSummary,
)
from testorch.domain.models.performance import PerformanceSummary
from testorch.domain.models.results import TestResult
from .environment import detect_environment

logger = logging.getLogger(__name__)


class BaselineStore:
    """Reads and writes the baseline document at ``path``."""

    def __init__(self, path: str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[BaselineRecord]:
        """
        Load the baseline.

        Returns:
            BaselineRecord, or None if no baseline exists yet

        Raises:
            BaselineError: If the document exists but cannot be read or parsed
        """
        if not self.path.exists():
            logger.info(f"No baseline at {self.path}")
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return BaselineRecord.from_dict(data)
        except OSError as e:
            raise BaselineError(str(self.path), str(e)) from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise BaselineError(str(self.path), f"malformed document ({e})") from e

    def save(self, record: BaselineRecord) -> None:
        """
        Overwrite the baseline with ``record``.

        Raises:
            BaselineError: If the document could not be written
        """
        directory = self.path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(directory)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise BaselineError(str(self.path), f"write failed ({e})") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
        logger.info(f"Baseline written to {self.path}")

    def update(
        self,
        result: TestResult,
        performance: Optional[PerformanceSummary] = None,
        environment: Optional[EnvironmentInfo] = None,
    ) -> BaselineRecord:
        """Replace the baseline with one built from a fresh run and return it."""
        record = build_baseline(result, performance, environment or detect_environment())
        self.save(record)
        return record


def build_baseline(
    result: TestResult,
    performance: Optional[PerformanceSummary] = None,
    environment: Optional[EnvironmentInfo] = None,
) -> BaselineRecord:
    """Build a baseline record from a run result and its resource summary."""
    summary = TestSummary(
        total=result.total,
        passed=result.passed,
        failed=result.failed,
        skipped=result.skipped,
        duration=result.duration,
        tests=result.durations_by_name(),
    )
    perf_block = None
    if performance is not None:
        perf_block = BaselinePerformance(
            duration=result.duration,
            peak_memory_mb=performance.peak_memory_mb,
            average_memory_mb=performance.average_memory_mb,
            cpu_usage=performance.average_cpu_percent,
        )
    return BaselineRecord(
        generated_at=datetime.now(),
        test_summary=summary,
        performance=perf_block,
        environment=environment or EnvironmentInfo(),
    )
