"""
Shared pytest fixtures for testorch tests.

Design Principles:
- Fixtures hand out REAL implementations (in-memory or on tmp_path) wherever
  they are fast enough; fakes from tests.mocks cover the rest
- Global configuration and cached database engines never leak between tests

Run with: pytest tests/ -v
"""

import os
from pathlib import Path
from typing import Dict, Generator, List

import pytest

from testorch.application.services.fingerprint_cache import FingerprintCache
from testorch.config import TestOrchConfig, reset_config
from testorch.infrastructure.cache import FileCacheStore, InMemoryCacheStore
from testorch.infrastructure.database import InMemoryUnitOfWork, dispose_engines

from tests.mocks import FakeSleep


# ═══════════════════════════════════════════════════════════════════════════════
# Isolation
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch) -> Generator[None, None, None]:
    """Reset global config and engines; keep TESTORCH_* from the shell out of tests."""
    for name in list(os.environ):
        if name.startswith("TESTORCH_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
    dispose_engines()


# ═══════════════════════════════════════════════════════════════════════════════
# Input files
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def input_files(tmp_path) -> List[str]:
    """Three small input files in a nested layout."""
    src = tmp_path / "inputs"
    (src / "pkg").mkdir(parents=True)
    files: Dict[Path, str] = {
        src / "test_alpha.py": "def test_alpha():\n    assert True\n",
        src / "test_beta.py": "def test_beta():\n    assert 1 + 1 == 2\n",
        src / "pkg" / "helpers.py": "VALUE = 42\n",
    }
    for path, content in files.items():
        path.write_text(content)
    return sorted(str(p) for p in files)


@pytest.fixture
def input_dir(input_files, tmp_path) -> str:
    return str(tmp_path / "inputs")


# ═══════════════════════════════════════════════════════════════════════════════
# Stores and services
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def file_store(tmp_path) -> FileCacheStore:
    return FileCacheStore(tmp_path / "cache")


@pytest.fixture
def memory_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def fingerprint_cache(file_store) -> FingerprintCache:
    return FingerprintCache(file_store)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def history_uow() -> InMemoryUnitOfWork:
    """One in-memory unit of work, reusable across runs."""
    return InMemoryUnitOfWork()


@pytest.fixture
def test_config(tmp_path) -> TestOrchConfig:
    config = TestOrchConfig.for_testing()
    config.data_dir = str(tmp_path / ".testorch")
    config.worker_mode = "thread"
    return config


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'history.db'}"
