"""Tests for port detection from config files and the live probes."""
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from duoctl.ports import (
    check_health,
    detect_port,
    extract_port,
    is_port_listening,
    service_health,
)

from conftest import write


# =============================================================================
# extract_port
# =============================================================================

@pytest.mark.parametrize("text, expected", [
    ("server.port = 5173", 5173),
    ("PORT=5173", 5173),
    ('    port: 5180,', 5180),
    ("port: 80", None),
    ("Port: 3000", None),
    ("timeout: 4000\nPORT=9001", 9001),
    ("port 99999 or 4000", 4000),
    ("", None),
    ("TOKEN_PORT=" + "1" * 5000, None),
    ("PORT=" + "9" * 5000 + " or 8080", 8080),
    ("port: 005173", 5173),
])
def test_extract_port(text, expected):
    assert extract_port(text) == expected


def test_extract_port_skips_out_of_range_line_and_uses_later_line():
    text = "port: 80\nlisten_port = 8080\n"
    assert extract_port(text) == 8080


def test_extract_port_ignores_numbers_without_keyword():
    assert extract_port("host = 127.0.0.1\ntimeout = 3000\n") is None


# =============================================================================
# detect_port
# =============================================================================

VITE_CONFIG = """import { defineConfig } from "vite";
import react from "@vitejs/plugin-react";

export default defineConfig({
  plugins: [react()],
  server: {
    host: "127.0.0.1",
    port: 5181,
    strictPort: true,
  },
});"""


class TestFrontend:
    def test_vite_config_ts(self, tmp_path):
        write(tmp_path / "vite.config.ts", VITE_CONFIG)
        assert detect_port(tmp_path, "frontend") == 5181

    def test_falls_through_to_js_config(self, tmp_path):
        write(tmp_path / "vite.config.ts", "export default {}")
        write(tmp_path / "vite.config.js", "export default { server: { port: 4321 } }")
        assert detect_port(tmp_path, "frontend") == 4321

    def test_ts_wins_over_js(self, tmp_path):
        write(tmp_path / "vite.config.ts", "port: 5200")
        write(tmp_path / "vite.config.js", "port: 5300")
        assert detect_port(tmp_path, "frontend") == 5200

    def test_default_without_config(self, tmp_path):
        assert detect_port(tmp_path, "frontend") == 5190

    def test_low_port_falls_back_to_default(self, tmp_path):
        write(tmp_path / "vite.config.ts", "server: { port: 80 }")
        assert detect_port(tmp_path, "frontend") == 5190

    def test_env_file_is_not_read_for_frontend(self, tmp_path):
        write(tmp_path / ".env", "PORT=6000")
        assert detect_port(tmp_path, "frontend") == 5190


class TestBackend:
    def test_env_file(self, tmp_path):
        write(tmp_path / ".env", "DEBUG=1\nPORT=9000\n")
        assert detect_port(tmp_path, "backend") == 9000

    def test_default_without_env(self, tmp_path):
        assert detect_port(tmp_path, "backend") == 8000

    def test_unreadable_env_falls_back(self, tmp_path):
        (tmp_path / ".env").write_bytes(b"PORT=\xff\xfe9000")
        assert detect_port(tmp_path, "backend") == 8000

    def test_vite_config_is_not_read_for_backend(self, tmp_path):
        write(tmp_path / "vite.config.ts", "port: 5200")
        assert detect_port(tmp_path, "backend") == 8000

    def test_missing_directory(self, tmp_path):
        assert detect_port(tmp_path / "nope", "backend") == 8000

    def test_huge_digit_run_falls_back(self, tmp_path):
        write(tmp_path / ".env", "TOKEN_PORT=" + "1" * 5000 + "\n")
        assert detect_port(tmp_path, "backend") == 8000


# =============================================================================
# Live probes
# =============================================================================

@pytest.fixture
def listening_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def health_server():
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            self.send_response(200 if self.path == "/health" else 500)
            self.end_headers()

        def log_message(self, *args):
            pass

    server = HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server.server_address[1]
    server.shutdown()
    server.server_close()


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_is_port_listening(listening_port):
    assert is_port_listening(listening_port)


def test_is_port_listening_closed_port():
    assert not is_port_listening(_free_port())


def test_check_health(health_server):
    assert check_health(f"http://127.0.0.1:{health_server}/health")
    assert not check_health(f"http://127.0.0.1:{health_server}/broken")


def test_check_health_unreachable():
    assert not check_health(f"http://127.0.0.1:{_free_port()}/health", timeout=0.5)


def test_service_health(health_server):
    project = {
        "frontend": {"port": health_server},
        "backend": {"port": health_server, "health_endpoint": "/health"},
    }
    assert service_health(project) == {"frontend": True, "backend": True}


def test_service_health_down():
    port = _free_port()
    project = {"frontend": {"port": port}, "backend": {"port": port}}
    assert service_health(project) == {"frontend": False, "backend": False}
