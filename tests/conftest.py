"""Shared fixtures for the resizeit test suite.

- ``settings_dir``: isolates settings.json in a temporary config directory
- ``make_image``: writes solid-color sample images to ``tmp_path``
- ``make_handle``: in-memory SourceHandle without touching disk
"""

from pathlib import Path

import pytest
from PIL import Image

from resizeit.image_io import SourceHandle


@pytest.fixture
def settings_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the settings module at an empty temporary config directory."""
    d = tmp_path / "config"
    d.mkdir()
    monkeypatch.setattr("resizeit.settings.config_dir", lambda: d)
    return d


@pytest.fixture
def make_image(tmp_path: Path):
    """Factory writing a solid-color image and returning its path."""

    def _make(name: str = "sample.png", size: tuple[int, int] = (100, 50), color=(255, 0, 0, 255)) -> Path:
        path = tmp_path / name
        mode = "RGBA" if path.suffix.lower() in (".png", ".webp") else "RGB"
        fill = color if mode == "RGBA" else color[:3]
        Image.new(mode, size, fill).save(path)
        return path

    return _make


@pytest.fixture
def make_handle():
    """Factory building a SourceHandle around an in-memory image."""

    def _make(size: tuple[int, int] = (100, 50), color=(255, 0, 0, 255), name: str = "mem.png") -> SourceHandle:
        return SourceHandle(Path(name), Image.new("RGBA", size, color))

    return _make
