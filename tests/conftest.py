import itertools
import os
import threading
import time
from pathlib import Path

import pytest

from duoctl.config import Settings
from duoctl.controller import ProcessController
from duoctl.launcher import ProcessLauncher
from duoctl.registry import ProcessRegistry

posix_only = pytest.mark.skipif(os.name == "nt", reason="uses sh and sleep")


class FakeHandle:
    _pids = itertools.count(40000)

    def __init__(self):
        self.pid = next(self._pids)
        self.returncode = None
        self.killed = False

    def poll(self):
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


class FakeLauncher(ProcessLauncher):
    """Records spawns instead of running anything."""

    def __init__(self, spawn_delay: float = 0.0, spawn_error: Exception = None, kill_error: Exception = None):
        self.spawn_delay = spawn_delay
        self.spawn_error = spawn_error
        self.kill_error = kill_error
        self.spawned = []
        self.terminated = []
        self._lock = threading.Lock()

    def spawn(self, command, cwd):
        if self.spawn_delay:
            time.sleep(self.spawn_delay)
        if self.spawn_error is not None:
            raise self.spawn_error
        handle = FakeHandle()
        with self._lock:
            self.spawned.append((command, cwd, handle))
        return handle

    def terminate(self, handle):
        self.terminated.append(handle)
        if self.kill_error is not None:
            raise self.kill_error
        handle.kill()


@pytest.fixture
def settings(tmp_path):
    return Settings(home=tmp_path / "home", lock_timeout=2.0)


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def controller(launcher):
    return ProcessController(ProcessRegistry(lock_timeout=2.0), launcher)


@pytest.fixture
def project_dir(tmp_path) -> Path:
    root = tmp_path / "shop"
    root.mkdir()
    return root


def write(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
