"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable, Dict

import pytest
import yaml

from templater.core.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Keep cached settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Default rendering settings, independent of TEMPLATER_* variables."""
    return Settings(
        strict_undefined=True,
        trim_blocks=True,
        lstrip_blocks=True,
        encoding="utf-8",
        file_mode=0o644,
    )


@pytest.fixture
def write_tree(tmp_path) -> Callable[[Dict[str, str], str], Path]:
    """Create files from a {relative_path: content} mapping under tmp_path."""

    def _write(files: Dict[str, str], root: str = "templates") -> Path:
        base = tmp_path / root
        base.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = base / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content.encode("utf-8"))
        return base

    return _write


@pytest.fixture
def values_file(tmp_path) -> Callable[[str, dict], Path]:
    """Write a YAML values file and return its path."""

    def _write(name: str, data: dict) -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write
