"""
Content fingerprinting of input file sets.

The fingerprint of a set of inputs is the SHA-256 over the path-sorted list of
``path NUL file-digest`` lines, where each file digest is the SHA-256 of that
file's bytes. Modification times are never consulted: touching a file without
changing its bytes keeps the fingerprint, changing one byte, adding a file or
removing a file changes it.

Directories in the input list are expanded recursively; bytecode caches are
skipped because they are rewritten by every interpreter run.
"""

import hashlib
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

from testorch.domain.models.cache import Fingerprint

_CHUNK_SIZE = 1024 * 1024
_SKIPPED_DIRS = frozenset({"__pycache__", ".pytest_cache", ".git", ".testorch"})
_SKIPPED_SUFFIXES = frozenset({".pyc", ".pyo"})


def normalize_path(path: str) -> str:
    """Absolute POSIX form used for sorting and as digest map key."""
    return Path(path).resolve().as_posix()


def file_digest(path: Path) -> str:
    """Hex SHA-256 of a file's content."""
    sha = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.hexdigest()


def _iter_files(path: Path) -> Iterator[Path]:
    if path.is_dir():
        for child in sorted(path.iterdir()):
            if child.is_dir():
                if child.name in _SKIPPED_DIRS:
                    continue
                yield from _iter_files(child)
            elif child.suffix not in _SKIPPED_SUFFIXES:
                yield child
    elif path.is_file():
        yield path
    else:
        raise FileNotFoundError(f"Input path does not exist: {path}")


def expand_inputs(paths: Iterable[str]) -> List[str]:
    """
    Expand input paths into the sorted list of files they cover.

    Raises:
        FileNotFoundError: If any input path does not exist
    """
    files = set()
    for raw in paths:
        for file_path in _iter_files(Path(raw)):
            files.add(normalize_path(str(file_path)))
    return sorted(files)


def compute_fingerprint(paths: Iterable[str]) -> Fingerprint:
    """
    Fingerprint the current content of ``paths``.

    Raises:
        FileNotFoundError: If any input path does not exist
        OSError: If a file cannot be read
    """
    file_digests: Dict[str, str] = {}
    for file_path in expand_inputs(paths):
        file_digests[file_path] = file_digest(Path(file_path))

    combined = hashlib.sha256()
    for file_path in sorted(file_digests):
        combined.update(file_path.encode("utf-8"))
        combined.update(b"\0")
        combined.update(file_digests[file_path].encode("ascii"))
        combined.update(b"\n")
    return Fingerprint(digest=combined.hexdigest(), file_digests=file_digests)


def compute_cache_key(paths: Iterable[str]) -> str:
    """
    Identifier of an input path set, independent of file content.

    Two runs over the same paths (in any order) share a cache slot; the
    fingerprint then decides whether the slot's entry is still valid.
    """
    normalized = sorted({normalize_path(p) for p in paths})
    material = "\n".join(normalized).encode("utf-8")
    return hashlib.sha256(material).hexdigest()[:32]
