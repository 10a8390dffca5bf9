"""
duoctl — two-tier dev project control
=====================================

  duoctl list                 # all projects with live health
  duoctl add <name> <path>    # register a project
  duoctl remove <id>          # forget a project
  duoctl detect <path>        # inspect a frontend/backend layout
  duoctl up <id>              # run frontend + backend until Ctrl+C
  duoctl web [--port 7878]    # web dashboard API
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import config
from .commands import Commands
from .controller import ProcessController
from .errors import DuoctlError
from .ports import service_health
from .registry import ProcessRegistry

console = Console()
app = typer.Typer(
    help="[bold green]duoctl[/] — start, stop and inspect frontend/backend dev projects",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

SERVICES = ("frontend", "backend")


def _settings() -> config.Settings:
    return config.Settings.from_env()


def _fail(err: DuoctlError):
    console.print(f"[red]✗  {err}[/]")
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    level = "DEBUG" if verbose else _settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# CATALOG
# ═══════════════════════════════════════════════════════════════════════════════

@app.command("list", help="All projects with frontend/backend health")
def cmd_list():
    settings = _settings()
    projects = config.load_projects(settings)
    if not projects:
        console.print("[yellow]No projects yet.[/]  Add one with [cyan]duoctl add <name> <path>[/]")
        return

    with ThreadPoolExecutor(max_workers=len(projects)) as ex:
        health = dict(zip(projects, ex.map(service_health, projects.values())))

    table = Table(
        box=box.ROUNDED,
        border_style="bright_black",
        header_style="bold cyan",
        title="[bold green]duoctl[/] — Projects",
    )
    table.add_column("Id", style="bold white", min_width=14)
    table.add_column("Name")
    table.add_column("Frontend", min_width=12)
    table.add_column("Backend", min_width=12)
    table.add_column("Path", style="dim")

    def cell(port, ok: bool) -> str:
        return f"[green]● :{port}[/]" if ok else f"[dim]○ :{port}[/]"

    for pid, project in projects.items():
        table.add_row(
            pid,
            project.get("name", pid),
            cell(project.get("frontend", {}).get("port", "?"), health[pid]["frontend"]),
            cell(project.get("backend", {}).get("port", "?"), health[pid]["backend"]),
            project.get("path", ""),
        )

    console.print()
    console.print(table)
    console.print()


@app.command("add", help="Register a project")
def cmd_add(
    name: str = typer.Argument(..., help="Project name"),
    path: str = typer.Argument(..., help="Project root (holds frontend/ and backend/)"),
    description: str = typer.Option("", "--description", "-d"),
    frontend_port: Optional[int] = typer.Option(None, "--frontend-port", help="Default: next free from 5173"),
    backend_port: Optional[int] = typer.Option(None, "--backend-port", help="Default: next free from 8000"),
):
    settings = _settings()
    root = Path(path).expanduser()
    if not root.exists():
        console.print(f"[yellow]⚠  {root} does not exist yet; detection and start will fail until it does.[/]")
    try:
        pid, entry = config.add_project(
            settings, name, str(root), description,
            frontend_port=frontend_port, backend_port=backend_port,
        )
    except DuoctlError as e:
        _fail(e)
    console.print(
        f"[green]✓  '{pid}' added[/]  [dim]frontend :{entry['frontend']['port']}  "
        f"backend :{entry['backend']['port']}[/]"
    )
    console.print(f"   [dim]Edit {settings.projects_file} to change commands.[/]")


@app.command("remove", help="Forget a project")
def cmd_remove(
    pid: str = typer.Argument(..., help="Project id"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
):
    settings = _settings()
    try:
        config.get_project(settings, pid)
        if not force and not typer.confirm(f"Remove '{pid}' from duoctl?", default=False):
            console.print("[dim]Cancelled.[/]")
            return
        config.remove_project(settings, pid)
    except DuoctlError as e:
        _fail(e)
    console.print(f"[green]✓  '{pid}' removed.[/]")


@app.command("detect", help="Inspect a directory for frontend/backend")
def cmd_detect(
    path: str = typer.Argument(..., help="Project root"),
):
    try:
        found = Commands(ProcessController()).detect_project(path)
    except DuoctlError as e:
        _fail(e)

    def side(present: bool, port) -> str:
        return f"[green]✓[/]  port [bold]{port}[/]" if present else "[dim]— not found[/]"

    lines = [
        f"[dim]Frontend:[/]  {side(found['has_frontend'], found['frontend_port'])}",
        f"[dim]Backend:[/]   {side(found['has_backend'], found['backend_port'])}",
    ]
    console.print(Panel("\n".join(lines), title=f"[bold cyan]{found['project_name']}[/]", border_style="cyan"))


# ═══════════════════════════════════════════════════════════════════════════════
# PROCESSES
# ═══════════════════════════════════════════════════════════════════════════════

@app.command("up", help="Run a project's dev servers until Ctrl+C")
def cmd_up(
    pid: str = typer.Argument(..., help="Project id"),
    only: Optional[str] = typer.Option(None, "--only", help="frontend or backend"),
):
    settings = _settings()
    if only is not None and only not in SERVICES:
        console.print(f"[red]✗  --only must be one of: {', '.join(SERVICES)}[/]")
        raise typer.Exit(2)

    try:
        project = config.get_project(settings, pid)
    except DuoctlError as e:
        _fail(e)

    controller = ProcessController(ProcessRegistry(settings.lock_timeout))
    commands = Commands(controller)
    for svc in SERVICES if only is None else (only,):
        entry = project.get(svc, {})
        console.print(f"[cyan]▶  {svc}: [dim]{entry.get('command', '')}[/]")
        try:
            console.print(f"[green]✓  {commands.start_service(svc, entry.get('path', ''), entry.get('command', ''))}[/]")
        except DuoctlError as e:
            console.print(f"[red]✗  {e}[/]")

    if not controller.running():
        raise typer.Exit(1)

    console.print("   [dim]Ctrl+C to stop[/]")
    try:
        while any(p.handle.poll() is None for p in controller.running()):
            time.sleep(1)
        console.print("[yellow]⚠  All dev servers exited.[/]")
    except KeyboardInterrupt:
        pass
    finally:
        for info in controller.stop_all():
            console.print(f"[green]■  {info.message}[/]")


@app.command("web", help="Web dashboard API (default port 7878)")
def cmd_web(
    port: int = typer.Option(7878, "--port", "-p", help="Dashboard port"),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
):
    import uvicorn
    from .web import build_app

    console.print("\n[bold green]duoctl dashboard[/]")
    console.print(f"  [cyan]http://{host}:{port}/api/projects[/]\n")
    console.print("  [dim]Ctrl+C to stop (running dev servers are stopped too)[/]\n")

    uvicorn.run(build_app(settings=_settings()), host=host, port=port, log_level="warning")


if __name__ == "__main__":
    app()
