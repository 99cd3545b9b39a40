"""
Application Factories.

Factory pattern for creating the orchestrator with proper dependency injection.
Simplifies wiring while keeping every dependency replaceable in tests.
"""

from typing import Callable, Optional, Sequence

from testorch.config import TestOrchConfig, get_config
from testorch.domain.errors import ConfigurationError
from testorch.domain.interfaces.cache_store import ICacheStore
from testorch.domain.interfaces.unit_of_work import IUnitOfWork
from testorch.domain.models.options import RunOptions
from testorch.infrastructure.cache import FileCacheStore, InMemoryCacheStore
from testorch.infrastructure.database import (
    InMemoryRunHistoryRepository,
    UnitOfWorkFactory,
)
from testorch.infrastructure.monitoring import ResourceMonitor

from .classification import FailureClassifier
from .services.execution_supervisor import ExecutionSupervisor
from .services.fingerprint_cache import FingerprintCache
from .services.orchestrator import TestRunOrchestrator
from .services.result_aggregator import ResultAggregator
from .services.retry_coordinator import RecoveryAction, RetryCoordinator, collect_garbage


def create_cache_store(config: TestOrchConfig) -> ICacheStore:
    """Cache store matching ``config.cache_mode``."""
    if config.cache_mode == "inmemory":
        return InMemoryCacheStore()
    elif config.cache_mode == "file":
        return FileCacheStore(config.cache_dir)
    else:
        raise ConfigurationError(
            f"Unknown cache mode: {config.cache_mode}. Use 'file' or 'inmemory'"
        )


def create_uow_factory(config: TestOrchConfig) -> Callable[[], IUnitOfWork]:
    """
    Unit-of-work factory matching ``config.history_mode``.

    In-memory units of work share one repository so that records survive
    between units of work for the lifetime of the factory.
    """
    if config.history_mode == "inmemory":
        runs = InMemoryRunHistoryRepository()
        return lambda: UnitOfWorkFactory.create_inmemory(runs)
    elif config.history_mode == "sqlalchemy":
        return lambda: UnitOfWorkFactory.create_sqlalchemy(config.history_db_url, echo=config.log_sql)
    else:
        raise ConfigurationError(
            f"Unknown history mode: {config.history_mode}. Use 'inmemory' or 'sqlalchemy'"
        )


def create_monitor_factory(config: TestOrchConfig) -> Callable[[RunOptions], ResourceMonitor]:
    """Resource monitors configured per run from the run's tracking flags."""

    def _factory(options: RunOptions) -> ResourceMonitor:
        return ResourceMonitor(
            sample_interval=config.sample_interval,
            track_memory=options.track_memory,
            track_cpu=options.track_cpu,
            liveness_interval=config.liveness_interval,
            ceiling=config.monitor_ceiling,
        )

    return _factory


class OrchestratorFactory:
    """
    Factory for creating TestRunOrchestrator with proper dependencies.

    Usage:
        # Using config
        orchestrator = OrchestratorFactory.create(TestOrchConfig.for_development())

        # With custom dependencies
        orchestrator = OrchestratorFactory.create_with_dependencies(
            cache_store=InMemoryCacheStore(),
            supervisor=ExecutionSupervisor(worker_mode="thread"),
        )

        # Quick test setup
        orchestrator = OrchestratorFactory.create_for_testing()
    """

    @staticmethod
    def create(
        config: Optional[TestOrchConfig] = None,
        recovery_actions: Sequence[RecoveryAction] = (collect_garbage,),
        sleep: Optional[Callable[[float], None]] = None,
    ) -> TestRunOrchestrator:
        """
        Create orchestrator based on configuration.

        Args:
            config: Configuration (uses global config if None)
            recovery_actions: Run before every retry
            sleep: Backoff delay function (time.sleep if None)
        """
        if config is None:
            config = get_config()
        if config.cache_mode == "file" or config.history_mode == "sqlalchemy":
            config.ensure_data_dir()

        supervisor = ExecutionSupervisor(
            worker_mode=config.worker_mode,
            poll_interval=config.poll_interval,
            heartbeat_interval=config.heartbeat_interval,
            grace_period=config.grace_period,
        )
        retry_kwargs = {"recovery_actions": recovery_actions}
        if sleep is not None:
            retry_kwargs["sleep"] = sleep

        return TestRunOrchestrator(
            cache=FingerprintCache(create_cache_store(config)),
            supervisor=supervisor,
            retry=RetryCoordinator(FailureClassifier(), **retry_kwargs),
            aggregator=ResultAggregator(),
            uow_factory=create_uow_factory(config),
            monitor_factory=create_monitor_factory(config),
        )

    @staticmethod
    def create_with_dependencies(
        cache_store: ICacheStore,
        supervisor: Optional[ExecutionSupervisor] = None,
        retry: Optional[RetryCoordinator] = None,
        uow_factory: Optional[Callable[[], IUnitOfWork]] = None,
        monitor_factory=None,
    ) -> TestRunOrchestrator:
        """
        Create orchestrator with explicit dependencies.

        Useful for testing with custom fake implementations.
        """
        return TestRunOrchestrator(
            cache=FingerprintCache(cache_store),
            supervisor=supervisor or ExecutionSupervisor(),
            retry=retry or RetryCoordinator(),
            aggregator=ResultAggregator(),
            uow_factory=uow_factory,
            monitor_factory=monitor_factory,
        )

    @staticmethod
    def create_for_testing(sleep: Optional[Callable[[float], None]] = None) -> TestRunOrchestrator:
        """
        Create orchestrator for unit tests.

        In-memory cache and history, short supervisor intervals, no real delays.
        """
        return OrchestratorFactory.create(
            TestOrchConfig.for_testing(),
            sleep=sleep or (lambda _seconds: None),
        )
