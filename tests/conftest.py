from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.services.ca import LocalCertificateAuthority
from fabnode.services.node import CommandSpec
from fabnode.services.settings import Settings


@pytest.fixture()
def paths(tmp_path: Path) -> PathProvider:
    settings = Settings.from_sources({}).with_overrides(base_dir=tmp_path / "fabnode-test")
    provider = PathProvider.from_settings(settings)
    provider.ensure_tree()
    return provider


@pytest.fixture(scope="session")
def local_ca() -> LocalCertificateAuthority:
    return LocalCertificateAuthority.create("org1", organization="Org1")


@dataclass
class FakeProcess:
    pid: int
    spec: CommandSpec
    exited: bool = False


@dataclass
class FakeMetrics:
    pid: int
    code: str = "S"
    rss: int = 4096
    vms: int = 8192
    cpu: float = 1.5
    error: Exception | None = None

    def status_code(self) -> str:
        if self.error:
            raise self.error
        return self.code

    def memory_info(self) -> tuple[int, int]:
        return self.rss, self.vms

    def cpu_percent(self) -> float:
        return self.cpu


@dataclass
class FakeControl:
    """Simulates processes that exit as soon as they are interrupted."""

    next_pid: int = 1000
    launch_error: Exception | None = None
    metrics_error: Exception | None = None
    interrupt_error: Exception | None = None
    wait_error: Exception | None = None
    launched: list[FakeProcess] = field(default_factory=list)
    interrupted: list[int] = field(default_factory=list)
    metrics: dict[int, FakeMetrics] = field(default_factory=dict)

    def launch(self, spec: CommandSpec) -> FakeProcess:
        if self.launch_error:
            raise self.launch_error
        self.next_pid += 1
        proc = FakeProcess(pid=self.next_pid, spec=spec)
        self.launched.append(proc)
        return proc

    def pid_of(self, process: FakeProcess) -> int:
        return process.pid

    def interrupt(self, process: FakeProcess) -> None:
        if self.interrupt_error:
            raise self.interrupt_error
        self.interrupted.append(process.pid)

    def wait(self, process: FakeProcess, timeout: float | None = None) -> int:
        if self.wait_error:
            raise self.wait_error
        process.exited = True
        return 0

    def open_metrics(self, pid: int) -> FakeMetrics:
        if self.metrics_error:
            raise self.metrics_error
        handle = FakeMetrics(pid=pid)
        self.metrics[pid] = handle
        return handle


@pytest.fixture()
def control() -> FakeControl:
    return FakeControl()


@pytest.fixture()
def echo_factory():
    return lambda: CommandSpec(argv=("peer", "node", "start"))
