"""Tests for the serve entry point."""
from __future__ import annotations

from typing import Any, Dict

from scripts import run_scheduler


def test_main_migrates_then_serves_one_worker(monkeypatch):
    calls: Dict[str, Any] = {}
    monkeypatch.setattr(run_scheduler, "run_migrations", lambda: calls.setdefault("migrated", True))
    monkeypatch.setattr(run_scheduler.uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))

    run_scheduler.main(port=8123)

    assert calls["migrated"] is True
    assert calls["app"] == "loadwatch.main:app"
    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 8123
    assert calls["workers"] == 1
    assert calls["log_config"] is None
