"""Unit-of-work definitions handed to the orchestrator by its caller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Sequence, Tuple

if TYPE_CHECKING:
    from testorch.domain.interfaces.output_sink import IOutputSink
    from testorch.domain.interfaces.test_runner import ITestRunner
    from testorch.domain.models.results import TestResult


@dataclass(frozen=True)
class TestFilter:
    """Selection passed through to the test framework."""
    __test__ = False

    name_patterns: Tuple[str, ...] = ()
    include_tags: Tuple[str, ...] = ()
    exclude_tags: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.name_patterns or self.include_tags or self.exclude_tags)


@dataclass(frozen=True)
class WorkSpec:
    """
    Opaque callable unit of work plus the ordered input paths it depends on.

    ``work`` takes no arguments and returns a TestResult. The input paths are
    what the fingerprint cache hashes; they are kept in caller order here and
    sorted only when fingerprinting.
    """

    work: Callable[[], "TestResult"]
    input_paths: Tuple[str, ...] = field(default_factory=tuple)
    name: str = "test-run"

    def __post_init__(self):
        if not callable(self.work):
            raise TypeError("WorkSpec.work must be callable")
        object.__setattr__(self, "input_paths", tuple(str(p) for p in self.input_paths))

    @classmethod
    def for_runner(
        cls,
        runner: "ITestRunner",
        input_paths: Sequence[str],
        test_filter: TestFilter | None = None,
        verbosity: int = 0,
        sink: "IOutputSink | None" = None,
        name: str = "test-run",
    ) -> "WorkSpec":
        """Bind a test framework adapter and its arguments into a WorkSpec."""
        paths = tuple(str(p) for p in input_paths)
        selection = test_filter or TestFilter()

        def _work() -> "TestResult":
            return runner.run_tests(paths, selection, verbosity, sink)

        return cls(work=_work, input_paths=paths, name=name)
