"""
Web dashboard API
=================

The dashboard owns one ``ProcessController`` for its whole lifetime; every
request goes through it, and shutting the server down stops whatever it
started.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import config
from .commands import Commands
from .controller import ProcessController
from .errors import (
    AlreadyRunning,
    DuoctlError,
    InvalidPort,
    NotRunning,
    PathNotFound,
    ProjectExists,
    ProjectNotFound,
)
from .ports import service_health
from .registry import ProcessRegistry

log = logging.getLogger(__name__)

SERVICES = ("frontend", "backend")


class StartRequest(BaseModel):
    service_type: str
    project_path: str
    command: str


class StopRequest(BaseModel):
    service_type: str
    project_path: str


class NewProject(BaseModel):
    name: str
    path: str
    description: str = ""
    frontend_port: Optional[int] = None
    backend_port: Optional[int] = None
    frontend_command: Optional[str] = None
    backend_command: Optional[str] = None


def _status_code(err: DuoctlError) -> int:
    if isinstance(err, (PathNotFound, ProjectNotFound)):
        return 404
    if isinstance(err, (AlreadyRunning, NotRunning, ProjectExists)):
        return 409
    if isinstance(err, InvalidPort):
        return 400
    return 500


def _fail(err: DuoctlError) -> JSONResponse:
    code = _status_code(err)
    if code >= 500:
        log.error("%s", err)
    return JSONResponse({"success": False, "message": str(err)}, status_code=code)


def build_app(
    controller: Optional[ProcessController] = None,
    settings: Optional[config.Settings] = None,
) -> FastAPI:
    settings = settings or config.Settings.from_env()
    controller = controller or ProcessController(ProcessRegistry(settings.lock_timeout))
    commands = Commands(controller)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        for info in controller.stop_all():
            log.info("shutdown: %s (PID %d)", info.message, info.pid)

    web = FastAPI(title="duoctl", docs_url=None, redoc_url=None, lifespan=lifespan)
    web.state.controller = controller
    web.state.settings = settings
    web.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def project_view(pid: str, project: dict) -> dict:
        view = {"id": pid, **project}
        for svc in SERVICES:
            proc = controller.status(svc, project.get(svc, {}).get("path", ""))
            view[svc] = {
                **project.get(svc, {}),
                "running": proc is not None,
                "pid": proc.pid if proc else None,
            }
        return view

    # ── Raw commands ──────────────────────────────────────────────────────────
    @web.post("/api/services/start")
    def api_start_service(req: StartRequest):
        try:
            message = commands.start_service(req.service_type, req.project_path, req.command)
        except DuoctlError as e:
            return _fail(e)
        return JSONResponse({"success": True, "message": message})

    @web.post("/api/services/stop")
    def api_stop_service(req: StopRequest):
        try:
            message = commands.stop_service(req.service_type, req.project_path)
        except DuoctlError as e:
            return _fail(e)
        return JSONResponse({"success": True, "message": message})

    @web.get("/api/services")
    def api_services():
        return JSONResponse([p.to_dict() for p in controller.running()])

    @web.get("/api/detect")
    def api_detect(path: str):
        try:
            return JSONResponse(commands.detect_project(path))
        except DuoctlError as e:
            return _fail(e)

    # ── Catalog ───────────────────────────────────────────────────────────────
    @web.get("/api/projects")
    def api_projects():
        projects = config.load_projects(settings)
        return JSONResponse([project_view(pid, p) for pid, p in projects.items()])

    @web.post("/api/projects", status_code=201)
    def api_add_project(req: NewProject):
        try:
            pid, entry = config.add_project(settings, **req.model_dump())
        except DuoctlError as e:
            return _fail(e)
        return JSONResponse(project_view(pid, entry), status_code=201)

    @web.delete("/api/projects/{pid}")
    def api_remove_project(pid: str):
        try:
            project = config.get_project(settings, pid)
        except DuoctlError as e:
            return _fail(e)
        for svc in SERVICES:
            try:
                commands.stop_service(svc, project.get(svc, {}).get("path", ""))
            except NotRunning:
                pass
            except DuoctlError as e:
                return _fail(e)
        config.remove_project(settings, pid)
        return JSONResponse({"success": True, "message": f"{pid} removed"})

    @web.post("/api/projects/{pid}/{service}/{action}")
    def api_project_action(pid: str, service: str, action: str):
        if service not in SERVICES or action not in ("start", "stop"):
            return JSONResponse({"success": False, "message": "unknown action"}, status_code=404)
        try:
            svc = config.get_project(settings, pid).get(service, {})
            if action == "start":
                message = commands.start_service(service, svc.get("path", ""), svc.get("command", ""))
            else:
                message = commands.stop_service(service, svc.get("path", ""))
        except DuoctlError as e:
            return _fail(e)
        return JSONResponse({"success": True, "message": message})

    @web.get("/api/projects/{pid}/health")
    def api_health(pid: str):
        try:
            project = config.get_project(settings, pid)
        except DuoctlError as e:
            return _fail(e)
        return JSONResponse(service_health(project))

    return web
