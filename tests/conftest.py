"""Shared fixtures for media sorting tests."""

import os
import time
from datetime import datetime
from pathlib import Path
from typing import List

import pytest
import yaml

from media_sorter.config import RunConfig, TransferMode
from media_sorter.reporter import ActionReporter

JUNE_15_2023 = datetime(2023, 6, 15, 12, 30, 0)


class RecordingReporter(ActionReporter):
    """Reporter that keeps every line in memory instead of printing."""

    def __init__(self):
        self.lines: List[str] = []
        super().__init__(write=self.lines.append)


class FakeTag:
    """Stands in for an exifread tag; only str() is used."""

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return self.value


def set_mtime(path: Path, when: datetime) -> None:
    stamp = time.mktime(when.timetuple())
    os.utime(path, (stamp, stamp))


@pytest.fixture
def source_root(tmp_path):
    root = tmp_path / 'source'
    root.mkdir()
    return root


@pytest.fixture
def dest_root(tmp_path):
    root = tmp_path / 'dest'
    root.mkdir()
    return root


@pytest.fixture
def create_media(source_root):
    """Factory fixture: create a file under the source tree with given content and mtime."""

    def _create(relative_path, content=b'media-content', mtime=JUNE_15_2023, base=None):
        full_path = (base or source_root) / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)
        set_mtime(full_path, mtime)
        return full_path

    return _create


@pytest.fixture
def make_config(source_root, dest_root):
    """Factory fixture: RunConfig for the temp trees with overridable fields."""

    def _make(**overrides):
        settings = {'mode': TransferMode.COPY}
        settings.update(overrides)
        return RunConfig(source_root=source_root, dest_root=dest_root, **settings)

    return _make


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def config_file(tmp_path):
    """Factory fixture: write a YAML configuration file and return its path."""

    def _write(data, filename='media_sorter.yml'):
        config_path = tmp_path / filename
        with open(config_path, 'w') as f:
            yaml.dump(data, f)
        return config_path

    return _write


def tree_contents(root: Path) -> dict:
    """Map of relative path -> bytes for every file under root."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob('*')) if path.is_file()
    }
