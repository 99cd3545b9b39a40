"""Baseline persistence and environment detection."""

from .baseline_store import BaselineStore, build_baseline
from .environment import detect_ci_provider, detect_container, detect_environment

__all__ = [
    "BaselineStore",
    "build_baseline",
    "detect_ci_provider",
    "detect_container",
    "detect_environment",
]
