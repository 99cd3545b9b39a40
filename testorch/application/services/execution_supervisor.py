"""
Execution Supervisor.

Runs one unit of work under a wall-clock budget and reports how much memory
and CPU it used.

Without a budget the work runs inline in the calling process. With a budget
it runs in an isolated worker:

    process mode (default)   forked child process, result sent back over a pipe;
                             on timeout the child gets SIGTERM, then SIGKILL
                             after ``grace_period``
    thread mode              daemon thread in this process, for platforms
                             without fork; a timed-out thread cannot be killed
                             and is abandoned

In both modes the resource monitor is attached to the worker before the work
starts and is always stopped when supervision ends, whatever the outcome.
While waiting, a heartbeat with elapsed and remaining time is written to the
output sink every ``heartbeat_interval`` seconds.
"""

import logging
import multiprocessing
import os
import threading
import time
import traceback
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from testorch.domain.errors import ConfigurationError, ExecutionTimeout, WorkerFault
from testorch.domain.interfaces.output_sink import IOutputSink
from testorch.domain.interfaces.resource_monitor import IResourceMonitor
from testorch.domain.models.performance import PerformanceSummary
from testorch.domain.models.results import TestResult

logger = logging.getLogger(__name__)

WORKER_MODES = ("process", "thread")


@dataclass(frozen=True)
class SupervisedExecution:
    """Outcome of one supervised run."""
    result: TestResult
    performance: Optional[PerformanceSummary]
    elapsed: float


def fork_available() -> bool:
    return "fork" in multiprocessing.get_all_start_methods()


def _fault_payload(exc: BaseException) -> tuple:
    names = [k.__name__ for k in type(exc).__mro__ if k not in (object, BaseException)]
    return ("fault", f"{type(exc).__name__}: {exc}", names, traceback.format_exc())


def _worker_main(work: Callable[[], TestResult], conn, go) -> None:
    """Entry point of the forked worker."""
    go.wait()
    try:
        payload: tuple = ("ok", work())
    except Exception as exc:
        payload = _fault_payload(exc)
    try:
        conn.send(payload)
    except Exception as exc:
        # Unpicklable result or exception
        conn.send(_fault_payload(exc))
    finally:
        conn.close()


class ExecutionSupervisor:
    """
    Bounded execution of a unit of work with resource monitoring.

    Attributes:
        worker_mode: "process" or "thread"
        poll_interval: Seconds between completion checks
        heartbeat_interval: Seconds between progress heartbeats
        grace_period: Seconds between cooperative and forced termination
    """

    def __init__(
        self,
        worker_mode: str = "process",
        poll_interval: float = 5.0,
        heartbeat_interval: float = 30.0,
        grace_period: float = 5.0,
    ):
        if worker_mode not in WORKER_MODES:
            raise ConfigurationError(f"Unknown worker mode: {worker_mode}. Use 'process' or 'thread'")
        if worker_mode == "process" and not fork_available():
            logger.warning("fork is not available on this platform, falling back to thread workers")
            worker_mode = "thread"
        if poll_interval <= 0 or heartbeat_interval <= 0:
            raise ConfigurationError("poll_interval and heartbeat_interval must be > 0")
        self.worker_mode = worker_mode
        self.poll_interval = poll_interval
        self.heartbeat_interval = heartbeat_interval
        self.grace_period = grace_period

    def run(
        self,
        work: Callable[[], TestResult],
        timeout: Optional[float] = None,
        monitor: Optional[IResourceMonitor] = None,
        sink: Optional[IOutputSink] = None,
        name: str = "test-run",
    ) -> SupervisedExecution:
        """
        Execute ``work`` and return its result with the resource summary.

        Args:
            work: Zero-argument callable returning a TestResult
            timeout: Wall-clock budget in seconds; None runs inline
            monitor: Resource monitor to attach to the worker (None = no monitoring)
            sink: Destination for heartbeat lines
            name: Label used in log and heartbeat lines

        Raises:
            ExecutionTimeout: The budget elapsed before the work finished
            WorkerFault: The work raised inside an isolated worker
            Exception: Whatever the work raised, when run inline
        """
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {timeout}")
        if timeout is None:
            return self._run_inline(work, monitor)
        if self.worker_mode == "process":
            return self._run_in_process(work, timeout, monitor, sink, name)
        return self._run_in_thread(work, timeout, monitor, sink, name)

    # ═══════════════════════════════════════════════════════════════════════════
    # Inline (unbounded)
    # ═══════════════════════════════════════════════════════════════════════════

    def _run_inline(self, work, monitor) -> SupervisedExecution:
        handle = monitor.start(os.getpid()) if monitor else None
        started = time.monotonic()
        performance = None
        try:
            result = work()
        finally:
            if handle is not None:
                performance = monitor.stop(handle)
        return SupervisedExecution(result, performance, time.monotonic() - started)

    # ═══════════════════════════════════════════════════════════════════════════
    # Process worker
    # ═══════════════════════════════════════════════════════════════════════════

    def _run_in_process(self, work, timeout, monitor, sink, name) -> SupervisedExecution:
        ctx = multiprocessing.get_context("fork")
        receiver, sender = ctx.Pipe(duplex=False)
        go = ctx.Event()
        process = ctx.Process(
            target=_worker_main,
            args=(work, sender, go),
            name=f"testorch-worker-{name}",
            daemon=True,
        )
        process.start()
        sender.close()
        logger.info(f"Started worker pid {process.pid} for {name} (budget {timeout:.1f}s)")

        handle = monitor.start(process.pid) if monitor else None
        performance: Optional[PerformanceSummary] = None
        go.set()
        started = time.monotonic()
        try:
            completed = self._wait(
                lambda wait: receiver.poll(wait), started, timeout, sink, name
            )
            elapsed = time.monotonic() - started
            if not completed:
                logger.warning(f"Worker pid {process.pid} for {name} exceeded its budget, terminating")
                self._terminate(process, name)
                raise ExecutionTimeout(elapsed, timeout)

            try:
                message = receiver.recv()
            except EOFError:
                process.join(self.grace_period)
                raise WorkerFault(
                    f"worker exited with code {process.exitcode} without reporting a result"
                )
            process.join(self.grace_period)
            if process.is_alive():
                process.kill()
                process.join()
        finally:
            if process.is_alive():
                logger.warning(f"Supervision of {name} aborted, terminating worker pid {process.pid}")
                self._terminate(process, name)
            if handle is not None:
                performance = monitor.stop(handle)
            receiver.close()

        if message[0] == "fault":
            _, cause, cause_types, traceback_text = message
            logger.error(f"Worker for {name} raised {cause}")
            raise WorkerFault(cause, cause_types, traceback_text)
        return SupervisedExecution(message[1], performance, elapsed)

    def _terminate(self, process, name: str) -> None:
        process.terminate()
        process.join(self.grace_period)
        if process.is_alive():
            logger.warning(
                f"Worker pid {process.pid} ignored SIGTERM for {self.grace_period:.1f}s, killing"
            )
            process.kill()
            process.join()

    # ═══════════════════════════════════════════════════════════════════════════
    # Thread worker
    # ═══════════════════════════════════════════════════════════════════════════

    def _run_in_thread(self, work, timeout, monitor, sink, name) -> SupervisedExecution:
        outcome: Dict[str, Any] = {}
        done = threading.Event()

        def _target():
            try:
                outcome["result"] = work()
            except BaseException as exc:
                # SystemExit and KeyboardInterrupt also end the worker as a fault
                outcome["error"] = exc
                outcome["traceback"] = traceback.format_exc()
            finally:
                done.set()

        handle = monitor.start(os.getpid()) if monitor else None
        performance: Optional[PerformanceSummary] = None
        thread = threading.Thread(target=_target, daemon=True, name=f"testorch-worker-{name}")
        started = time.monotonic()
        thread.start()
        try:
            completed = self._wait(done.wait, started, timeout, sink, name)
            elapsed = time.monotonic() - started
        finally:
            if handle is not None:
                performance = monitor.stop(handle)

        if not completed:
            logger.warning(
                f"Worker thread for {name} exceeded its budget; it cannot be killed and is abandoned"
            )
            raise ExecutionTimeout(elapsed, timeout)
        if "error" in outcome:
            raise WorkerFault.from_exception(outcome["error"], outcome["traceback"])
        return SupervisedExecution(outcome["result"], performance, elapsed)

    # ═══════════════════════════════════════════════════════════════════════════
    # Waiting and heartbeats
    # ═══════════════════════════════════════════════════════════════════════════

    def _wait(
        self,
        wait: Callable[[float], bool],
        started: float,
        timeout: float,
        sink: Optional[IOutputSink],
        name: str,
    ) -> bool:
        """Poll ``wait`` until it reports completion or the budget runs out."""
        deadline = started + timeout
        next_heartbeat = started + self.heartbeat_interval
        while True:
            now = time.monotonic()
            if now >= deadline:
                return False
            if now >= next_heartbeat:
                self._heartbeat(now - started, deadline - now, sink, name)
                while next_heartbeat <= now:
                    next_heartbeat += self.heartbeat_interval
            step = min(self.poll_interval, deadline - now, max(next_heartbeat - now, 0.0))
            if wait(max(step, 0.0)):
                return True

    @staticmethod
    def _heartbeat(elapsed: float, remaining: float, sink: Optional[IOutputSink], name: str) -> None:
        line = f"[{name}] still running: {elapsed:.0f}s elapsed, {remaining:.0f}s remaining"
        logger.info(line)
        if sink is not None:
            sink.write(line)
