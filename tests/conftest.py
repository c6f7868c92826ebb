"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from mlist.app import create_app
from mlist.config import Settings

TRAILER_BYTES = bytes(range(100))


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    """Build a served tree with public, protected, hidden and symlinked parts.

    Layout::

        root/
          public.txt, alpha.txt, Beta.txt
          Zeta/
          movies/trailer.mp4        100 bytes, 0..99
          a/.password               "secret"
          a/inner.txt
          a/b/deep.txt
          vault/.password           "vault-pass"
          vault/gold.txt
          hidden/.private
          hidden/visible.txt
          link.txt -> outside/secret.txt
          linkdir -> outside/
        outside/secret.txt
    """
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_bytes(b"top secret")

    root = tmp_path / "root"
    root.mkdir()
    (root / "public.txt").write_bytes(b"hello world")
    (root / "alpha.txt").write_bytes(b"alpha")
    (root / "Beta.txt").write_bytes(b"beta")
    (root / "Zeta").mkdir()

    (root / "movies").mkdir()
    (root / "movies" / "trailer.mp4").write_bytes(TRAILER_BYTES)

    (root / "a" / "b").mkdir(parents=True)
    (root / "a" / ".password").write_text("secret\n")
    (root / "a" / "inner.txt").write_bytes(b"inner")
    (root / "a" / "b" / "deep.txt").write_bytes(b"deep")

    (root / "vault").mkdir()
    (root / "vault" / ".password").write_text("vault-pass")
    (root / "vault" / "gold.txt").write_bytes(b"gold")

    (root / "hidden").mkdir()
    (root / "hidden" / ".private").write_text("")
    (root / "hidden" / "visible.txt").write_bytes(b"visible")

    (root / "link.txt").symlink_to(outside / "secret.txt")
    (root / "linkdir").symlink_to(outside, target_is_directory=True)

    return Path(os.path.realpath(root))


@pytest.fixture
def settings(media_root: Path, tmp_path: Path) -> Settings:
    """Create test settings serving the media tree."""
    return Settings(
        root_dir=media_root,
        host="127.0.0.1",
        port=3000,
        debug=True,
        frontend_dir=tmp_path / "no-frontend",
    )


@pytest.fixture
def client(settings: Settings) -> TestClient:
    """Create test client with configured app."""
    app = create_app(settings)
    return TestClient(app)
