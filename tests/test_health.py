"""Tests for med_reminder.health."""

from __future__ import annotations

import urllib.error
import urllib.request

import pytest

from med_reminder.health import HealthServer


@pytest.fixture()
def server():
    s = HealthServer(port=0, host="127.0.0.1")
    s.start()
    yield s
    s.shutdown()


def _get(server: HealthServer, path: str) -> tuple[int, str]:
    url = f"http://127.0.0.1:{server.port}{path}"
    try:
        with urllib.request.urlopen(url, timeout=5) as resp:
            return resp.status, resp.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        return exc.code, exc.read().decode("utf-8")


class TestHealthServer:
    def test_health_is_always_ok(self, server: HealthServer):
        assert _get(server, "/health") == (200, "OK")

    def test_not_ready_before_mark(self, server: HealthServer):
        assert _get(server, "/ready") == (503, "Not ready")

    def test_ready_after_mark(self, server: HealthServer):
        server.mark_ready()
        assert _get(server, "/ready") == (200, "Ready")

    def test_unknown_path(self, server: HealthServer):
        assert _get(server, "/metrics") == (404, "Not found")

    def test_binds_free_port(self, server: HealthServer):
        assert server.port > 0

    def test_shutdown_without_start(self):
        s = HealthServer(port=0, host="127.0.0.1")
        s.shutdown()
