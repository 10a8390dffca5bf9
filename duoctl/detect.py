"""Recognise a frontend/backend project layout under a directory."""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Dict, Any

from .config import BACKEND_MARKERS, FRONTEND_MARKERS
from .errors import PathNotFound
from .ports import detect_port


@dataclass(frozen=True)
class DetectedProject:
    has_frontend: bool
    has_backend: bool
    frontend_port: Optional[int]
    backend_port: Optional[int]
    project_name: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _has_any(directory: Path, names) -> bool:
    return any((directory / name).exists() for name in names)


def detect_project(project_path) -> DetectedProject:
    path = Path(project_path)
    if not project_path or not path.exists():
        raise PathNotFound(str(project_path))

    frontend_dir = path / "frontend"
    backend_dir = path / "backend"

    has_frontend = _has_any(frontend_dir, FRONTEND_MARKERS)
    has_backend = _has_any(backend_dir, BACKEND_MARKERS)

    return DetectedProject(
        has_frontend=has_frontend,
        has_backend=has_backend,
        frontend_port=detect_port(frontend_dir, "frontend") if has_frontend else None,
        backend_port=detect_port(backend_dir, "backend") if has_backend else None,
        project_name=path.name if path.name not in ("", "..") else "Unknown",
    )
