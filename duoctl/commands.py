"""
Commands exposed to front ends (CLI, web dashboard).

Plain strings in, a message string or a dict out. Failures raise
``DuoctlError``; its ``str()`` is the message for the user.
"""

from typing import Dict, Any

from .controller import ProcessController
from .detect import detect_project as _detect_project


class Commands:
    def __init__(self, controller: ProcessController):
        self.controller = controller

    def start_service(self, service_type: str, project_path: str, command: str) -> str:
        return self.controller.start(service_type, project_path, command).message

    def stop_service(self, service_type: str, project_path: str) -> str:
        return self.controller.stop(service_type, project_path).message

    def detect_project(self, project_path: str) -> Dict[str, Any]:
        return _detect_project(project_path).to_dict()
