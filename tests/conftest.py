"""Shared fixtures for the image pipeline tests."""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest
from PIL import Image

# Add scripts to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'scripts'))

from config import OptimizerConfig


@pytest.fixture
def temp_site():
    """Create a temporary site repository with an uploads directory."""
    temp_dir = Path(tempfile.mkdtemp())

    (temp_dir / 'public' / 'images' / 'uploads').mkdir(parents=True)
    (temp_dir / 'src' / 'data').mkdir(parents=True)

    yield temp_dir

    # Cleanup
    shutil.rmtree(temp_dir)


@pytest.fixture
def config(temp_site):
    """Small, fast config: two formats that every Pillow build can encode."""
    return OptimizerConfig.for_root(
        temp_site,
        widths=[400, 800, 1200],
        formats=('webp', 'jpg'),
        savings_reference=('webp', 400),
    )


@pytest.fixture
def make_image(temp_site):
    """Factory writing a solid-color test image into the uploads directory."""
    uploads = temp_site / 'public' / 'images' / 'uploads'

    def _make(name, size=(1000, 500), color='red', mode='RGB', subdir=None):
        target_dir = uploads / subdir if subdir else uploads
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        Image.new(mode, size, color=color).save(path)
        return path

    return _make
