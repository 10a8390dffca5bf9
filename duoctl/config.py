"""
Settings and the project catalog.

The catalog is a plain ``projects.json`` file under ``DUOCTL_HOME``::

    {"projects": {"my-app": {"name": "My App", "path": "...",
                             "frontend": {...}, "backend": {...}}}}
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, Tuple

from .errors import InvalidPort, ProjectExists, ProjectNotFound

# ── Defaults ──────────────────────────────────────────────────────────────────
DEFAULT_FRONTEND_PORT = 5190
DEFAULT_BACKEND_PORT = 8000
FIRST_FRONTEND_PORT = 5173
PORT_RANGE = (1024, 65535)
DEFAULT_LOCK_TIMEOUT = 5.0
DEFAULT_HEALTH_ENDPOINT = "/health"

FRONTEND_COMMAND = "npm run dev"
BACKEND_COMMAND = "uvicorn main:app --reload --port {port}"

FRONTEND_CONFIG_FILES = ("vite.config.ts", "vite.config.js")
BACKEND_ENV_FILE = ".env"
FRONTEND_MARKERS = ("package.json",)
BACKEND_MARKERS = ("requirements.txt", "main.py")


@dataclass
class Settings:
    home: Path = field(default_factory=lambda: Path.home() / ".duoctl")
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    log_level: str = "WARNING"

    @property
    def projects_file(self) -> Path:
        return self.home / "projects.json"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls()
        home = os.environ.get("DUOCTL_HOME")
        if home:
            settings.home = Path(home).expanduser()
        timeout = os.environ.get("DUOCTL_LOCK_TIMEOUT")
        if timeout:
            settings.lock_timeout = float(timeout)
        settings.log_level = os.environ.get("DUOCTL_LOG_LEVEL", settings.log_level).upper()
        return settings


def parse_port(value) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise InvalidPort(value) from None
    if not PORT_RANGE[0] <= port <= PORT_RANGE[1]:
        raise InvalidPort(value)
    return port


# ── Catalog ───────────────────────────────────────────────────────────────────
def project_id(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", name.lower())


def load_projects(settings: Settings) -> Dict[str, Any]:
    path = settings.projects_file
    if not path.exists():
        return {}
    with open(path) as f:
        return json.load(f).get("projects", {})


def save_projects(settings: Settings, projects: Dict[str, Any]):
    settings.home.mkdir(parents=True, exist_ok=True)
    with open(settings.projects_file, "w") as f:
        json.dump({"projects": projects}, f, indent=2)


def get_project(settings: Settings, pid: str) -> Dict[str, Any]:
    projects = load_projects(settings)
    if pid not in projects:
        raise ProjectNotFound(pid)
    return projects[pid]


def next_available_ports(projects: Dict[str, Any]) -> Tuple[int, int]:
    """Lowest free (frontend, backend) ports not claimed by any catalog entry."""
    used_frontend = {p.get("frontend", {}).get("port") for p in projects.values()}
    used_backend = {p.get("backend", {}).get("port") for p in projects.values()}

    frontend_port = FIRST_FRONTEND_PORT
    while frontend_port in used_frontend:
        frontend_port += 1

    backend_port = DEFAULT_BACKEND_PORT
    while backend_port in used_backend:
        backend_port += 1

    return frontend_port, backend_port


def add_project(
    settings: Settings,
    name: str,
    path: str,
    description: str = "",
    frontend_port: Optional[int] = None,
    backend_port: Optional[int] = None,
    frontend_command: Optional[str] = None,
    backend_command: Optional[str] = None,
) -> Tuple[str, Dict[str, Any]]:
    projects = load_projects(settings)
    pid = project_id(name)
    if pid in projects:
        raise ProjectExists(pid)

    free_frontend, free_backend = next_available_ports(projects)
    fe_port = parse_port(frontend_port) if frontend_port is not None else free_frontend
    be_port = parse_port(backend_port) if backend_port is not None else free_backend

    base = Path(path).expanduser().resolve()
    entry = {
        "name": name,
        "description": description or f"{name} project",
        "path": str(base),
        "frontend": {
            "port": fe_port,
            "path": str(base / "frontend"),
            "command": frontend_command or FRONTEND_COMMAND,
        },
        "backend": {
            "port": be_port,
            "path": str(base / "backend"),
            "command": backend_command or BACKEND_COMMAND.format(port=be_port),
            "health_endpoint": DEFAULT_HEALTH_ENDPOINT,
        },
    }
    projects[pid] = entry
    save_projects(settings, projects)
    return pid, entry


def remove_project(settings: Settings, pid: str) -> Dict[str, Any]:
    projects = load_projects(settings)
    if pid not in projects:
        raise ProjectNotFound(pid)
    entry = projects.pop(pid)
    save_projects(settings, projects)
    return entry
