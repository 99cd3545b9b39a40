"""Detection of the machine a run executes on (CI provider, container, hardware)."""

import os
import platform
from pathlib import Path
from typing import Mapping, Optional, Tuple

import psutil

from testorch.domain.models.baseline import EnvironmentInfo

# Checked in order; the first variable that is set names the provider
CI_PROVIDERS: Tuple[Tuple[str, str], ...] = (
    ("GITHUB_ACTIONS", "github-actions"),
    ("GITLAB_CI", "gitlab-ci"),
    ("TF_BUILD", "azure-pipelines"),
    ("JENKINS_URL", "jenkins"),
    ("CIRCLECI", "circleci"),
    ("TRAVIS", "travis-ci"),
    ("BUILDKITE", "buildkite"),
    ("TEAMCITY_VERSION", "teamcity"),
    ("APPVEYOR", "appveyor"),
    ("CI", "generic"),
)

_TRUTHY = ("1", "true", "yes")


def detect_ci_provider(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Name of the CI provider, or None when not running under CI."""
    env = os.environ if environ is None else environ
    for variable, provider in CI_PROVIDERS:
        value = env.get(variable)
        if not value:
            continue
        if variable == "CI" and value.lower() not in _TRUTHY:
            continue
        return provider
    return None


def detect_container(root: str = "/") -> bool:
    """True inside Docker, Podman or a Kubernetes pod."""
    base = Path(root)
    if (base / ".dockerenv").exists() or (base / "run" / ".containerenv").exists():
        return True
    if os.environ.get("KUBERNETES_SERVICE_HOST"):
        return True
    try:
        cgroup = (base / "proc" / "1" / "cgroup").read_text()
    except OSError:
        return False
    return any(marker in cgroup for marker in ("docker", "kubepods", "containerd", "lxc"))


def detect_environment(environ: Optional[Mapping[str, str]] = None) -> EnvironmentInfo:
    provider = detect_ci_provider(environ)
    try:
        available = psutil.virtual_memory().available
    except (psutil.Error, OSError):
        available = None
    return EnvironmentInfo(
        is_ci=provider is not None,
        ci_provider=provider,
        is_container=detect_container(),
        platform=platform.platform(),
        processor_count=os.cpu_count() or 0,
        available_memory_bytes=available,
    )
