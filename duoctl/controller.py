"""
Start and stop dev servers.

``stop`` succeeds once the entry is out of the registry. Whether the OS
actually managed to kill the process is logged, not reported: a server that
already exited is just as stopped as one we killed.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List

from .errors import NotRunning, PathNotFound, AlreadyRunning, SpawnFailed
from .launcher import ProcessLauncher, default_launcher
from .registry import ManagedProcess, ProcessRegistry, ServiceKey

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartedInfo:
    service_type: str
    project_path: str
    pid: int
    command: str

    @property
    def message(self) -> str:
        return f"{self.service_type} started with PID {self.pid}"


@dataclass(frozen=True)
class StoppedInfo:
    service_type: str
    project_path: str
    pid: int

    @property
    def message(self) -> str:
        return f"{self.service_type} stopped"


class ProcessController:
    def __init__(
        self,
        registry: Optional[ProcessRegistry] = None,
        launcher: Optional[ProcessLauncher] = None,
    ):
        self.registry = registry if registry is not None else ProcessRegistry()
        self.launcher = launcher if launcher is not None else default_launcher()

    def start(self, service_type: str, project_path: str, command: str) -> StartedInfo:
        key = ServiceKey(project_path, service_type)
        if self.registry.contains(key):
            raise AlreadyRunning(service_type)

        if not project_path or not Path(project_path).exists():
            raise PathNotFound(project_path)

        def spawn() -> ManagedProcess:
            try:
                handle = self.launcher.spawn(command, cwd=project_path)
            except (OSError, subprocess.SubprocessError) as e:
                raise SpawnFailed(service_type, str(e)) from e
            return ManagedProcess(key=key, handle=handle, command=command, cwd=project_path)

        process = self.registry.insert_new(key, spawn)
        log.info("started %s (PID %d): %s", key, process.pid, command)
        return StartedInfo(service_type, project_path, process.pid, command)

    def stop(self, service_type: str, project_path: str) -> StoppedInfo:
        key = ServiceKey(project_path, service_type)
        process = self.registry.remove(key)
        if process is None:
            raise NotRunning(service_type)

        self._terminate(process)
        return StoppedInfo(service_type, project_path, process.pid)

    def stop_all(self) -> List[StoppedInfo]:
        stopped = []
        for process in self.registry.drain():
            self._terminate(process)
            stopped.append(StoppedInfo(process.key.service_type, process.key.project_path, process.pid))
        return stopped

    def status(self, service_type: str, project_path: str) -> Optional[ManagedProcess]:
        return self.registry.get(ServiceKey(project_path, service_type))

    def running(self) -> List[ManagedProcess]:
        return self.registry.snapshot()

    def _terminate(self, process: ManagedProcess):
        try:
            self.launcher.terminate(process.handle)
        except (OSError, subprocess.SubprocessError) as e:
            log.warning("could not kill %s (PID %d): %s", process.key, process.pid, e)
        else:
            log.info("stopped %s (PID %d)", process.key, process.pid)
