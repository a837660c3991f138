"""Tests for hot-reloadable pipeline settings."""

import json
import os

import pytest

from common.constants import DEFAULT_CHUNK_TARGET_SIZE
from ingestor.exceptions import InvalidSettingsError
from ingestor.settings import PipelineSettings, SettingsStore


def test_creates_defaults_when_missing(tmp_path):
    path = tmp_path / "conf" / "settings.json"

    settings = SettingsStore(path).current()

    assert settings == PipelineSettings()
    assert settings.chunk_target_size == DEFAULT_CHUNK_TARGET_SIZE
    assert json.loads(path.read_text())["enabled"] is True


def test_missing_keys_take_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"poll_interval": 5}))

    settings = SettingsStore(path).current()

    assert settings.poll_interval == 5
    assert settings.enabled is True


def test_corrupt_file_falls_back_to_defaults_with_backup(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")

    settings = SettingsStore(path).current()

    assert settings == PipelineSettings()
    assert (tmp_path / "settings.json.bak").read_text() == "{not json"


def test_invalid_values_fall_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"chunk_target_size": -1}))

    assert SettingsStore(path).current() == PipelineSettings()


def test_reloads_when_file_changes(tmp_path):
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    assert store.current().enabled is True

    path.write_text(json.dumps({"enabled": False, "poll_interval": 2}))
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    reloaded = store.current()
    assert reloaded.enabled is False
    assert reloaded.poll_interval == 2


def test_update_persists_and_swaps_snapshot(tmp_path):
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    before = store.current()

    after = store.update({"chunk_target_size": 128})

    assert before.chunk_target_size == DEFAULT_CHUNK_TARGET_SIZE
    assert after.chunk_target_size == 128
    assert store.current() is after
    assert SettingsStore(path).current().chunk_target_size == 128


def test_update_rejects_invalid_settings(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")

    with pytest.raises(InvalidSettingsError):
        store.update({"max_concurrent_files": 0})
    assert store.current().max_concurrent_files >= 1


def test_snapshot_is_immutable():
    settings = PipelineSettings()

    with pytest.raises(Exception):
        settings.enabled = False


def test_update_keeps_unseen_file_edits(tmp_path):
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    store.current()

    path.write_text(json.dumps({"enabled": False}))
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    updated = store.update({"chunk_target_size": 256})

    assert updated.enabled is False
    assert updated.chunk_target_size == 256
    assert json.loads(path.read_text())["enabled"] is False
