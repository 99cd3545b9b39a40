"""Test framework adapters."""

from .pytest_runner import PytestRunner, ResultCollector, build_pytest_args

__all__ = ["PytestRunner", "ResultCollector", "build_pytest_args"]
