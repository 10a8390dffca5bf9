"""
How dev-server commands are spawned and killed on each platform.

Windows: ``cmd /k <command>`` in its own console window, killed as a whole
tree with ``taskkill /F /T``. Elsewhere: ``sh -c <command>`` sharing our
stdio, killed with SIGKILL.
"""

import logging
import os
import subprocess

log = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

CREATE_NEW_CONSOLE = getattr(subprocess, "CREATE_NEW_CONSOLE", 0x00000010)
CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0x08000000)
KILL_WAIT = 5  # seconds


class ProcessLauncher:
    """Spawn a shell command and kill what it spawned."""

    def spawn(self, command: str, cwd: str) -> subprocess.Popen:
        raise NotImplementedError

    def terminate(self, handle: subprocess.Popen):
        raise NotImplementedError


class ShellLauncher(ProcessLauncher):
    def spawn(self, command, cwd):
        return subprocess.Popen(["sh", "-c", command], cwd=cwd)

    def terminate(self, handle):
        handle.kill()
        try:
            handle.wait(timeout=KILL_WAIT)
        except subprocess.TimeoutExpired:
            log.warning("PID %d did not exit within %ds of SIGKILL", handle.pid, KILL_WAIT)


class ConsoleLauncher(ProcessLauncher):
    def spawn(self, command, cwd):
        return subprocess.Popen(
            ["cmd", "/k", command],
            cwd=cwd,
            creationflags=CREATE_NEW_CONSOLE,
        )

    def terminate(self, handle):
        # The console's cmd.exe is only the root; npm/node/uvicorn run below it.
        try:
            subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(handle.pid)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
                creationflags=CREATE_NO_WINDOW,
            )
        finally:
            try:
                handle.wait(timeout=KILL_WAIT)
            except subprocess.TimeoutExpired:
                log.warning("PID %d did not exit within %ds of taskkill", handle.pid, KILL_WAIT)


def default_launcher() -> ProcessLauncher:
    return ConsoleLauncher() if IS_WINDOWS else ShellLauncher()
