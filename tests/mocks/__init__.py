"""
Centralized Fake Infrastructure for testorch Tests.

Fakes implement the real domain interfaces and accept and return real domain
types, so tests written against them also hold for the production classes.

Structure:
- workloads.py: scripted workloads, result builders, fake sleep
- services.py: fake monitor, cache store, unit of work and test runner

Usage:
    from tests.mocks import ScriptedWork, make_result, FakeSleep
"""

from tests.mocks.workloads import (
    FakeSleep,
    ScriptedWork,
    always_fails,
    make_result,
    sleeping_work,
)
from tests.mocks.services import (
    BrokenCacheStore,
    BrokenUnitOfWork,
    RecordingMonitor,
    StaticRunner,
)

__all__ = [
    "FakeSleep",
    "ScriptedWork",
    "always_fails",
    "make_result",
    "sleeping_work",
    "BrokenCacheStore",
    "BrokenUnitOfWork",
    "RecordingMonitor",
    "StaticRunner",
]
