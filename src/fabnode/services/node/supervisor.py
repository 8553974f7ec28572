"""Start, stop and inspect the single external process owned by a node."""
from __future__ import annotations

import logging
import os
import signal
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

import psutil

from fabnode.services.errors import AlreadyRunningError, NotRunningError

_log = logging.getLogger("fabnode.node.supervisor")

_REAP_TIMEOUT_S = 5.0


@dataclass(frozen=True, slots=True)
class CommandSpec:
    argv: Sequence[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    log_path: Path | None = None


CommandFactory = Callable[[], CommandSpec]


class RunState(str, Enum):
    RUNNING = "Running"
    SLEEPING = "Sleeping"
    STOPPED = "Stopped"
    IDLE = "Idle"
    ZOMBIE = "Zombie"
    WAITING = "Waiting"
    LOCKED = "Locked"
    UNKNOWN = "Unknown"


STATUS_MAP: dict[str, RunState] = {
    "R": RunState.RUNNING,
    "S": RunState.SLEEPING,
    "T": RunState.STOPPED,
    "I": RunState.IDLE,
    "Z": RunState.ZOMBIE,
    "W": RunState.WAITING,
    "L": RunState.LOCKED,
}


def map_run_state(code: str) -> RunState:
    return STATUS_MAP.get(code, RunState.UNKNOWN)


@dataclass(frozen=True, slots=True)
class ProcessState:
    pid: int
    run_state: RunState
    resident_memory_bytes: int = 0
    virtual_memory_bytes: int = 0
    cpu_percent: float = 0.0

    @classmethod
    def stopped(cls) -> "ProcessState":
        return cls(pid=0, run_state=RunState.STOPPED)

    def as_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "status": self.run_state.value,
            "memory": {"rss": self.resident_memory_bytes, "vms": self.virtual_memory_bytes},
            "cpu": {"percent": self.cpu_percent},
        }


class MetricsHandle(Protocol):
    pid: int

    def status_code(self) -> str: ...

    def memory_info(self) -> tuple[int, int]: ...

    def cpu_percent(self) -> float: ...


class ProcessControl(Protocol):
    """Platform capabilities the supervisor needs from the OS."""

    def launch(self, spec: CommandSpec) -> Any: ...

    def pid_of(self, process: Any) -> int: ...

    def interrupt(self, process: Any) -> None: ...

    def wait(self, process: Any, timeout: float | None = None) -> int | None: ...

    def open_metrics(self, pid: int) -> MetricsHandle: ...


# psutil reports names, the lookup table is keyed by single-letter state codes.
# Some constants exist only on some psutil releases (WAKE_KILL is gone in 7.x).
_PSUTIL_STATUS_LETTERS: tuple[tuple[str, str], ...] = (
    ("STATUS_RUNNING", "R"),
    ("STATUS_SLEEPING", "S"),
    ("STATUS_DISK_SLEEP", "D"),
    ("STATUS_STOPPED", "T"),
    ("STATUS_TRACING_STOP", "t"),
    ("STATUS_ZOMBIE", "Z"),
    ("STATUS_DEAD", "X"),
    ("STATUS_WAKE_KILL", "K"),
    ("STATUS_WAKING", "W"),
    ("STATUS_IDLE", "I"),
    ("STATUS_LOCKED", "L"),
    ("STATUS_WAITING", "W"),
    ("STATUS_PARKED", "P"),
    ("STATUS_SUSPENDED", "T"),
)
_PSUTIL_CODES: dict[str, str] = {
    getattr(psutil, name): letter for name, letter in _PSUTIL_STATUS_LETTERS if hasattr(psutil, name)
}


class PsutilMetrics:
    def __init__(self, pid: int) -> None:
        self._proc = psutil.Process(pid)
        self.pid = pid
        # first call only primes the counters
        self._proc.cpu_percent(interval=None)

    def status_code(self) -> str:
        status = self._proc.status()
        return _PSUTIL_CODES.get(status, status)

    def memory_info(self) -> tuple[int, int]:
        mem = self._proc.memory_info()
        return int(mem.rss), int(mem.vms)

    def cpu_percent(self) -> float:
        return float(self._proc.cpu_percent(interval=None))


class SubprocessControl:
    """:class:`ProcessControl` backed by :mod:`subprocess` and :mod:`psutil`."""

    def launch(self, spec: CommandSpec) -> subprocess.Popen:
        env = None
        if spec.env is not None:
            env = os.environ.copy()
            env.update(spec.env)
        kwargs: dict[str, Any] = {}
        if os.name == "nt":
            # CTRL_BREAK_EVENT only reaches processes in their own group
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        cwd = str(spec.cwd) if spec.cwd else None
        if spec.log_path is None:
            return subprocess.Popen(list(spec.argv), cwd=cwd, env=env, **kwargs)
        spec.log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(spec.log_path, "a", encoding="utf-8") as logf:
            return subprocess.Popen(
                list(spec.argv),
                cwd=cwd,
                env=env,
                stdout=logf,
                stderr=subprocess.STDOUT,
                **kwargs,
            )

    def pid_of(self, process: subprocess.Popen) -> int:
        return int(process.pid)

    def interrupt(self, process: subprocess.Popen) -> None:
        if os.name == "nt":
            process.send_signal(signal.CTRL_BREAK_EVENT)
        else:
            process.send_signal(signal.SIGINT)

    def wait(self, process: subprocess.Popen, timeout: float | None = None) -> int | None:
        return process.wait(timeout=timeout)

    def open_metrics(self, pid: int) -> MetricsHandle:
        return PsutilMetrics(pid)


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Running:
    process: Any
    pid: int
    metrics: MetricsHandle = field(compare=False)


Slot = Idle | Running


class ProcessSupervisor:
    """Owns at most one live process for a node.

    Calls are synchronous and not serialized internally; a caller sharing a
    supervisor across threads must serialize ``start``/``stop``/``status``.
    """

    def __init__(
        self,
        node_id: str,
        command_factory: CommandFactory,
        *,
        control: ProcessControl | None = None,
    ) -> None:
        self._node_id = node_id
        self._command_factory = command_factory
        self._control: ProcessControl = control or SubprocessControl()
        self._slot: Slot = Idle()

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def is_running(self) -> bool:
        return isinstance(self._slot, Running)

    def start(self) -> int:
        slot = self._slot
        if isinstance(slot, Running):
            _log.info("node=%s is already started pid=%s", self._node_id, slot.pid)
            raise AlreadyRunningError(self._node_id, slot.pid)

        try:
            spec = self._command_factory()
        except Exception:
            _log.warning("failed to build command for node=%s", self._node_id, exc_info=True)
            raise
        try:
            process = self._control.launch(spec)
        except Exception:
            _log.warning("failed to launch node=%s argv=%s", self._node_id, list(spec.argv), exc_info=True)
            raise

        pid = self._control.pid_of(process)
        try:
            metrics = self._control.open_metrics(pid)
        except Exception:
            _log.warning("failed to open metrics for node=%s pid=%s; reaping", self._node_id, pid, exc_info=True)
            self._reap(process, pid)
            raise

        self._slot = Running(process=process, pid=pid, metrics=metrics)
        _log.info("started node=%s pid=%s", self._node_id, pid)
        return pid

    def stop(self, *, timeout: float | None = None) -> int | None:
        """Interrupt the live process and wait for it to exit.

        ``timeout=None`` waits indefinitely. When the wait times out the
        process is still held, so ``stop`` may be retried.
        """

        slot = self._slot
        if not isinstance(slot, Running):
            _log.info("node=%s is already stopped", self._node_id)
            raise NotRunningError(self._node_id)

        try:
            self._control.interrupt(slot.process)
        except Exception:
            _log.warning("failed to interrupt node=%s pid=%s", self._node_id, slot.pid, exc_info=True)
            raise
        try:
            code = self._control.wait(slot.process, timeout)
        except Exception:
            _log.warning("failed waiting for node=%s pid=%s to exit", self._node_id, slot.pid, exc_info=True)
            raise

        self._slot = Idle()
        _log.info("stopped node=%s pid=%s exit_code=%s", self._node_id, slot.pid, code)
        return code

    def status(self) -> ProcessState:
        slot = self._slot
        if not isinstance(slot, Running):
            return ProcessState.stopped()

        metrics = slot.metrics
        try:
            code = metrics.status_code()
            rss, vms = metrics.memory_info()
            cpu = metrics.cpu_percent()
        except Exception:
            _log.warning("failed to query node=%s pid=%s", self._node_id, slot.pid, exc_info=True)
            raise
        return ProcessState(
            pid=slot.pid,
            run_state=map_run_state(code),
            resident_memory_bytes=rss,
            virtual_memory_bytes=vms,
            cpu_percent=cpu,
        )

    def _reap(self, process: Any, pid: int) -> None:
        """Interrupt a process whose start failed and wait briefly for it.

        A child that ignores the interrupt outlives the wait and is left
        running untracked; the failure is logged with its pid so it can be
        cleaned up by hand.
        """
        try:
            self._control.interrupt(process)
            self._control.wait(process, _REAP_TIMEOUT_S)
        except Exception:
            _log.warning(
                "reaping node=%s pid=%s failed; process may be orphaned",
                self._node_id,
                pid,
                exc_info=True,
            )
