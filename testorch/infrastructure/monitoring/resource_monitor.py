"""
Resource Monitor.

Background sampler of one target process's memory and CPU usage, built on
psutil. Each ``start()`` spawns a single daemon thread that owns its samples
and hands the reduced PerformanceSummary back through a Future when it ends.

Lifecycle of a sampling task:
    start(pid) ──► sample every ``sample_interval`` ──► ends when
        - stop(handle) is called                     (graceful, no sample loss)
        - the target process is gone                 (checked every ``liveness_interval``)
        - ``ceiling`` seconds have elapsed           (safety bound)

Failures reading a single metric are swallowed per sample (the metric is None
in that sample); a monitor that never obtains a reading reports None fields.

Usage:
    monitor = ResourceMonitor(sample_interval=0.5, track_cpu=True)
    handle = monitor.start(worker.pid)
    ...
    summary = monitor.stop(handle)
"""

import logging
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import psutil

from testorch.domain.interfaces.resource_monitor import IResourceMonitor
from testorch.domain.models.performance import PerformanceSample, PerformanceSummary

logger = logging.getLogger(__name__)


@dataclass
class MonitorHandle:
    """Handle of one running sampling task."""
    target_pid: int
    started_at: float = field(default_factory=time.monotonic)
    stop_event: threading.Event = field(default_factory=threading.Event)
    summary: "Future[PerformanceSummary]" = field(default_factory=Future)
    thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()


class ResourceMonitor(IResourceMonitor):
    """
    psutil-based IResourceMonitor.

    Attributes:
        sample_interval: Seconds between samples
        track_memory: Sample resident memory (target plus its children)
        track_cpu: Sample CPU percent of the target
        liveness_interval: Seconds between target existence checks
        ceiling: Hard lifetime limit of a sampling task in seconds
        stop_timeout: Bounded wait in stop() before giving up on the task
    """

    def __init__(
        self,
        sample_interval: float = 0.5,
        track_memory: bool = True,
        track_cpu: bool = False,
        liveness_interval: float = 5.0,
        ceiling: float = 30 * 60.0,
        stop_timeout: float = 2.0,
    ):
        if sample_interval <= 0:
            raise ValueError("sample_interval must be > 0")
        self.sample_interval = sample_interval
        self.track_memory = track_memory
        self.track_cpu = track_cpu
        self.liveness_interval = liveness_interval
        self.ceiling = ceiling
        self.stop_timeout = stop_timeout

    def start(self, target_pid: int) -> MonitorHandle:
        """Start sampling ``target_pid`` in a background thread."""
        handle = MonitorHandle(target_pid=target_pid)
        handle.thread = threading.Thread(
            target=self._run,
            args=(handle,),
            daemon=True,
            name=f"ResourceMonitor-{target_pid}",
        )
        handle.thread.start()
        logger.info(f"Resource monitor started for pid {target_pid}")
        return handle

    def stop(self, handle: MonitorHandle) -> PerformanceSummary:
        """
        Stop the sampling task and return its summary.

        Returns:
            PerformanceSummary of every sample taken before the call, or the
            all-zero summary if the task did not finish within stop_timeout
        """
        handle.stop_event.set()
        try:
            summary = handle.summary.result(timeout=self.stop_timeout)
        except FutureTimeout:
            logger.warning(
                f"Resource monitor for pid {handle.target_pid} did not stop within "
                f"{self.stop_timeout}s, returning empty summary"
            )
            return PerformanceSummary.empty()
        logger.info(
            f"Resource monitor stopped for pid {handle.target_pid} "
            f"({summary.sample_count} samples)"
        )
        return summary

    # ═══════════════════════════════════════════════════════════════════════════
    # Sampling task
    # ═══════════════════════════════════════════════════════════════════════════

    def _run(self, handle: MonitorHandle) -> None:
        samples: List[PerformanceSample] = []
        try:
            self._sample_loop(handle, samples)
        except Exception as e:
            logger.error(f"Resource monitor for pid {handle.target_pid} failed: {e}", exc_info=True)
        finally:
            handle.summary.set_result(PerformanceSummary.from_samples(samples))

    def _sample_loop(self, handle: MonitorHandle, samples: List[PerformanceSample]) -> None:
        try:
            process = psutil.Process(handle.target_pid)
        except psutil.Error as e:
            logger.warning(f"Cannot monitor pid {handle.target_pid}: {e}")
            return

        if self.track_cpu:
            # First cpu_percent() call only establishes the reference point
            try:
                process.cpu_percent(interval=None)
            except psutil.Error:
                pass

        deadline = handle.started_at + self.ceiling
        last_liveness_check = handle.started_at

        while not handle.stop_event.is_set():
            now = time.monotonic()
            if now >= deadline:
                logger.warning(
                    f"Resource monitor for pid {handle.target_pid} reached its "
                    f"{self.ceiling:.0f}s ceiling, terminating"
                )
                return
            if now - last_liveness_check >= self.liveness_interval:
                last_liveness_check = now
                if not self._is_alive(process):
                    logger.info(f"Monitored pid {handle.target_pid} exited, terminating monitor")
                    return

            samples.append(self._sample(process))
            handle.stop_event.wait(self.sample_interval)

    @staticmethod
    def _is_alive(process: psutil.Process) -> bool:
        try:
            return process.is_running() and process.status() != psutil.STATUS_ZOMBIE
        except psutil.Error:
            return False

    def _sample(self, process: psutil.Process) -> PerformanceSample:
        memory_bytes = None
        cpu_percent = None
        if self.track_memory:
            try:
                memory_bytes = process.memory_info().rss
                for child in process.children(recursive=True):
                    try:
                        memory_bytes += child.memory_info().rss
                    except psutil.Error:
                        continue
            except psutil.Error as e:
                logger.debug(f"Memory sample failed for pid {process.pid}: {e}")
                memory_bytes = None
        if self.track_cpu:
            try:
                cpu_percent = process.cpu_percent(interval=None)
            except psutil.Error as e:
                logger.debug(f"CPU sample failed for pid {process.pid}: {e}")
        return PerformanceSample(
            timestamp=datetime.now(),
            memory_bytes=memory_bytes,
            cpu_percent=cpu_percent,
        )
