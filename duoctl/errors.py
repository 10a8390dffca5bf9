"""Errors raised by duoctl. ``str(err)`` is the message shown to the user."""


class DuoctlError(Exception):
    """Base class for every error duoctl reports to its caller."""


# ── Process lifecycle ─────────────────────────────────────────────────────────
class PathNotFound(DuoctlError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path does not exist: {path}")


class AlreadyRunning(DuoctlError):
    def __init__(self, service_type: str):
        self.service_type = service_type
        super().__init__(f"{service_type} is already running")


class NotRunning(DuoctlError):
    def __init__(self, service_type: str):
        self.service_type = service_type
        super().__init__(f"{service_type} is not running")


class SpawnFailed(DuoctlError):
    def __init__(self, service_type: str, os_message: str):
        self.service_type = service_type
        self.os_message = os_message
        super().__init__(f"Failed to start {service_type}: {os_message}")


class LockUnavailable(DuoctlError):
    """The registry lock could not be taken; its contents are in an unknown state."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Process registry lock unavailable after {timeout:g}s")


# ── Project catalog ───────────────────────────────────────────────────────────
class ProjectNotFound(DuoctlError):
    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")


class ProjectExists(DuoctlError):
    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' already exists")


class InvalidPort(DuoctlError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid port: {value!r} (expected 1024-65535)")
