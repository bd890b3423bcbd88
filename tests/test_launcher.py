from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import launch_app  # noqa: E402


def test_parse_args_reads_environment(monkeypatch):
    monkeypatch.setenv("SHIFT_PLANNER_HOST", "0.0.0.0")
    monkeypatch.setenv("SHIFT_PLANNER_PORT", "9000")
    args = launch_app.parse_args([])
    assert (args.host, args.port, args.reload, args.install) == ("0.0.0.0", 9000, False, False)


def test_parse_args_flags_override_environment(monkeypatch):
    monkeypatch.delenv("SHIFT_PLANNER_HOST", raising=False)
    monkeypatch.delenv("SHIFT_PLANNER_PORT", raising=False)
    args = launch_app.parse_args(["--port", "8080", "--reload"])
    assert (args.host, args.port, args.reload) == ("127.0.0.1", 8080, True)


def test_launch_app_serves_api_module(monkeypatch):
    calls = {}
    uvicorn = pytest.importorskip("uvicorn")
    monkeypatch.setattr(uvicorn, "run", lambda target, **kwargs: calls.update(target=target, **kwargs))
    assert launch_app.launch_app(["--host", "localhost", "--port", "8123"]) == 0
    assert calls["target"] == "api:app"
    assert calls["app_dir"] == str(launch_app.APP_DIR)
    assert (calls["host"], calls["port"], calls["reload"]) == ("localhost", 8123, False)
