"""Pytest configuration: non-strict settings and an isolated SQLite file per test."""

import importlib
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Keep the import-time store away from the working tree.
os.environ.setdefault("STRICT_MODE", "false")
os.environ.setdefault("DATABASE_PATH", str(Path(os.environ.get("TMPDIR", "/tmp")) / "langstall-test.sqlite3"))

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def reload_app(monkeypatch: pytest.MonkeyPatch, db_path: Path):
    """Re-import langstall.* so config and the store pick up the test environment."""
    monkeypatch.setenv("STRICT_MODE", "false")
    monkeypatch.setenv("DATABASE_PATH", str(db_path))
    for name in list(sys.modules.keys()):
        if name == "langstall" or name.startswith("langstall."):
            sys.modules.pop(name)
    importlib.import_module("langstall.config")
    importlib.import_module("langstall.store")
    return importlib.import_module("langstall.main")


@pytest.fixture()
def clock():
    from langstall.clock import FixedClock

    return FixedClock(FIXED_NOW)


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    main = reload_app(monkeypatch, tmp_path / "store.sqlite3")
    from langstall.clock import FixedClock
    from langstall.metrics import registry
    from langstall.store import store

    store.clock = FixedClock(FIXED_NOW)
    registry.reset()
    return TestClient(main.app)
