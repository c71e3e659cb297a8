import os

import pytest
from PIL import Image

# Qt must not need a display server in CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from helpers import encode


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config_dir() at a temp dir and clear API environment overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "config"))
    monkeypatch.delenv("AVATAR_API_URL", raising=False)
    monkeypatch.delenv("AVATAR_API_TOKEN", raising=False)
    return tmp_path / "config"


@pytest.fixture
def png_bytes() -> bytes:
    """A 300x200 opaque red PNG."""
    return encode(Image.new("RGB", (300, 200), (255, 0, 0)))
