"""
Process registry
================

One table of running dev servers, keyed by ``(project_path, service_type)``.
A key that is absent is not running; there is no other status flag. The
registry does not watch its processes, so a server that dies on its own stays
listed until it is stopped.

Every access takes the single table lock. ``insert_new`` is the only place
where work other than a dict operation (the spawn) happens under the lock,
so that two starts for one key cannot both get past the existence check.
"""

import subprocess
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional

from .config import DEFAULT_LOCK_TIMEOUT
from .errors import AlreadyRunning, LockUnavailable


class ServiceKey(NamedTuple):
    project_path: str
    service_type: str

    def __str__(self) -> str:
        return f"{self.project_path}:{self.service_type}"


@dataclass
class ManagedProcess:
    key: ServiceKey
    handle: subprocess.Popen
    command: str
    cwd: str
    started_at: float = field(default_factory=time.time)

    @property
    def pid(self) -> int:
        return self.handle.pid

    def to_dict(self) -> dict:
        return {
            "service_type": self.key.service_type,
            "project_path": self.key.project_path,
            "pid": self.pid,
            "command": self.command,
            "cwd": self.cwd,
            "started_at": self.started_at,
        }


class ProcessRegistry:
    def __init__(self, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self._processes: Dict[ServiceKey, ManagedProcess] = {}
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout

    @contextmanager
    def _locked(self) -> Iterator[Dict[ServiceKey, ManagedProcess]]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise LockUnavailable(self._lock_timeout)
        try:
            yield self._processes
        finally:
            self._lock.release()

    def contains(self, key: ServiceKey) -> bool:
        with self._locked() as table:
            return key in table

    def get(self, key: ServiceKey) -> Optional[ManagedProcess]:
        with self._locked() as table:
            return table.get(key)

    def insert(self, key: ServiceKey, process: ManagedProcess):
        with self._locked() as table:
            if key in table:
                raise AlreadyRunning(key.service_type)
            table[key] = process

    def insert_new(
        self, key: ServiceKey, factory: Callable[[], ManagedProcess]
    ) -> ManagedProcess:
        """Build and register a process for ``key`` unless one is registered.

        ``factory`` only runs when the key is absent, and the key stays locked
        until its result is stored. Exceptions from ``factory`` leave the
        table untouched.
        """
        with self._locked() as table:
            if key in table:
                raise AlreadyRunning(key.service_type)
            process = factory()
            table[key] = process
            return process

    def remove(self, key: ServiceKey) -> Optional[ManagedProcess]:
        with self._locked() as table:
            return table.pop(key, None)

    def drain(self) -> List[ManagedProcess]:
        with self._locked() as table:
            processes = list(table.values())
            table.clear()
            return processes

    def snapshot(self) -> List[ManagedProcess]:
        with self._locked() as table:
            return list(table.values())

    def __len__(self) -> int:
        with self._locked() as table:
            return len(table)
