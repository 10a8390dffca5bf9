"""duoctl — start, stop and inspect two-tier (frontend/backend) dev projects."""

from .commands import Commands
from .controller import ProcessController, StartedInfo, StoppedInfo
from .detect import DetectedProject, detect_project
from .errors import (
    AlreadyRunning,
    DuoctlError,
    LockUnavailable,
    NotRunning,
    PathNotFound,
    SpawnFailed,
)
from .ports import detect_port
from .registry import ManagedProcess, ProcessRegistry, ServiceKey

__version__ = "0.1.0"
