"""
Port inspection.

``detect_port`` guesses a dev server's configured port from the files in its
directory. It does not parse vite configs or .env files: it looks for a line
that mentions ``port``/``PORT`` and takes the first number on it that is a
usable port. A comment with two numbers on it can fool it.
"""

import logging
import re
import socket
import urllib.error
import urllib.request
from pathlib import Path
from typing import Optional, Iterable, Dict, Any

import psutil

from .config import (
    BACKEND_ENV_FILE,
    DEFAULT_BACKEND_PORT,
    DEFAULT_FRONTEND_PORT,
    DEFAULT_HEALTH_ENDPOINT,
    FRONTEND_CONFIG_FILES,
    PORT_RANGE,
)

log = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]+")


# ── Config scanning ───────────────────────────────────────────────────────────
def extract_port(content: str) -> Optional[int]:
    for line in content.splitlines():
        if "port" not in line and "PORT" not in line:
            continue
        for token in _NON_DIGITS.split(line):
            if not token or len(token.lstrip("0")) > 5:
                continue
            port = int(token)
            if PORT_RANGE[0] <= port <= PORT_RANGE[1]:
                return port
    return None


def _read(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _scan_files(service_dir: Path, names: Iterable[str]) -> Optional[int]:
    for name in names:
        content = _read(service_dir / name)
        if content is None:
            continue
        port = extract_port(content)
        if port is not None:
            log.debug("port %d found in %s", port, service_dir / name)
            return port
    return None


def detect_port(service_dir, service_type: str) -> Optional[int]:
    """Configured port of the service in ``service_dir``, or the type's default.

    Anything that is not ``"frontend"`` is inspected like a backend.
    """
    service_dir = Path(service_dir)
    if service_type == "frontend":
        port = _scan_files(service_dir, FRONTEND_CONFIG_FILES)
        return port if port is not None else DEFAULT_FRONTEND_PORT

    port = _scan_files(service_dir, (BACKEND_ENV_FILE,))
    return port if port is not None else DEFAULT_BACKEND_PORT


# ── Live probes ───────────────────────────────────────────────────────────────
def _tcp_open(port: int, host: str = "127.0.0.1", timeout: float = 0.5) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def is_port_listening(port: int) -> bool:
    try:
        for conn in psutil.net_connections(kind="inet"):
            if conn.status == psutil.CONN_LISTEN and conn.laddr and conn.laddr.port == port:
                return True
        return False
    except (psutil.AccessDenied, PermissionError):
        # macOS needs root for net_connections
        return _tcp_open(port)


def check_health(url: str, timeout: float = 1.0) -> bool:
    try:
        with urllib.request.urlopen(url, timeout=timeout) as r:
            return 200 <= r.status < 300
    except (urllib.error.URLError, OSError, ValueError):
        return False


def service_health(project: Dict[str, Any]) -> Dict[str, bool]:
    """Advisory health of a catalog entry's frontend and backend."""
    frontend = project.get("frontend", {})
    backend = project.get("backend", {})

    frontend_ok = bool(frontend.get("port")) and is_port_listening(frontend["port"])
    backend_ok = False
    if backend.get("port"):
        endpoint = backend.get("health_endpoint") or DEFAULT_HEALTH_ENDPOINT
        backend_ok = check_health(f"http://127.0.0.1:{backend['port']}{endpoint}")

    return {"frontend": frontend_ok, "backend": backend_ok}
