"""Shared fixtures: host facts, configs, fixture executors and tarballs."""

import io
import tarfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from homedock.executor import RunResult
from homedock.schema import Capability, HostFacts, InstallConfig

P, A = Capability.PRESENT, Capability.ABSENT


def make_facts(**overrides) -> HostFacts:
    """A Linux host with every rootless prerequisite in place."""
    fields = dict(
        platform="Linux",
        euid=1000,
        username="alice",
        arch="x86_64",
        distro_id="fedora",
        systemd=P,
        iptables=P,
        newuidmap=P,
        newgidmap=P,
        userns_clone=P,
        user_namespaces=P,
        subuid=P,
        subgid=P,
    )
    fields.update(overrides)
    return HostFacts(**fields)


def make_config(tmp_path: Path, facts: Optional[HostFacts] = None, **overrides) -> InstallConfig:
    home = tmp_path / "home"
    home.mkdir(exist_ok=True)
    runtime = tmp_path / "run-user"
    runtime.mkdir(exist_ok=True)
    fields = dict(
        home=home,
        bin_dir=home / "bin",
        runtime_dir=runtime,
        path_env="/usr/bin:/bin",
        engine_url="https://example.invalid/docker-1.0.0.tgz",
        extras_url="https://example.invalid/docker-rootless-extras-1.0.0.tgz",
        unit_path=home / ".config/systemd/user/docker.service",
        rootful_socket=tmp_path / "var/run/docker.sock",
        host_root=tmp_path,
        facts=facts or make_facts(),
    )
    fields.update(overrides)
    return InstallConfig(**fields)


def make_tgz(path: Path, top: str, files: Dict[str, bytes], mode: int = 0o755) -> Path:
    """Write a gzipped tarball with every file wrapped in a *top*/ directory."""
    with tarfile.open(path, "w:gz") as tf:
        d = tarfile.TarInfo(top)
        d.type = tarfile.DIRTYPE
        d.mode = 0o755
        tf.addfile(d)
        for name, data in files.items():
            info = tarfile.TarInfo(f"{top}/{name}")
            info.size = len(data)
            info.mode = mode
            tf.addfile(info, io.BytesIO(data))
    return path


class RecordingExecutor:
    """Executor that records commands and answers from a rule list.

    Each rule is (predicate on cmd, RunResult); unmatched commands fail with rc 1.
    """

    def __init__(self, rules: Optional[List] = None) -> None:
        self.rules = rules or []
        self.calls: List[List[str]] = []

    def __call__(self, cmd, cwd=None) -> RunResult:
        self.calls.append(list(cmd))
        for match, result in self.rules:
            if match(cmd):
                return result
        return RunResult(stdout="", stderr="unknown command", returncode=1)

    def ran(self, *words: str) -> bool:
        return any(all(w in cmd for w in words) for cmd in self.calls)


def ok(stdout: str = "") -> RunResult:
    return RunResult(stdout=stdout, stderr="", returncode=0)


def fail(rc: int = 1, stderr: str = "") -> RunResult:
    return RunResult(stdout="", stderr=stderr, returncode=rc)


def has(*words: str) -> Callable[[List[str]], bool]:
    return lambda cmd: all(w in cmd for w in words)


@pytest.fixture
def facts() -> HostFacts:
    return make_facts()


@pytest.fixture
def config(tmp_path) -> InstallConfig:
    return make_config(tmp_path)
