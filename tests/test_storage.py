"""Tests for the JSON key-value store."""

import json
from pathlib import Path

import pytest

from finance_core.exceptions import PersistenceError
from finance_core.storage import JSONStorage


def test_load_missing_key_returns_default(storage: JSONStorage) -> None:
    assert storage.load("records.json") is None
    assert storage.load("records.json", default=[]) == []


def test_save_then_load(storage: JSONStorage, data_dir: Path) -> None:
    storage.save("settings.json", {"spendingCap": 10})

    assert storage.load("settings.json") == {"spendingCap": 10}
    assert not (data_dir / "settings.json.tmp").exists()


def test_corrupted_file_raises(storage: JSONStorage, data_dir: Path) -> None:
    (data_dir / "records.json").write_text("[{")

    with pytest.raises(PersistenceError):
        storage.load("records.json")


def test_write_is_retried_once(storage: JSONStorage, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def flaky_write(path: Path, payload: object) -> None:
        calls.append(path)
        if len(calls) == 1:
            raise OSError("disk hiccup")
        path.write_text(json.dumps(payload), encoding="utf-8")

    monkeypatch.setattr(JSONStorage, "_write", staticmethod(flaky_write))

    storage.save("records.json", [])

    assert len(calls) == 2
    assert storage.load("records.json") == []


def test_write_failure_is_reported(storage: JSONStorage, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_write(path: Path, payload: object) -> None:
        raise OSError("read-only filesystem")

    monkeypatch.setattr(JSONStorage, "_write", staticmethod(broken_write))

    with pytest.raises(PersistenceError):
        storage.save("records.json", [])
