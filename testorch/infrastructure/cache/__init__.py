"""Fingerprint cache storage backends and content hashing."""

from .file_cache_store import FileCacheStore
from .fingerprint import compute_cache_key, compute_fingerprint, expand_inputs
from .inmemory_cache_store import InMemoryCacheStore

__all__ = [
    "FileCacheStore",
    "InMemoryCacheStore",
    "compute_cache_key",
    "compute_fingerprint",
    "expand_inputs",
]
