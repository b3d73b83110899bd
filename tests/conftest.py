"""Shared fixtures: a throwaway output area and small generated images."""
import io
from pathlib import Path

import pytest
from PIL import Image

from webpdesk.conversion.service import ConversionService


def png_bytes(size=(16, 12), color=(200, 30, 30), mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def service(output_dir: Path, tmp_path: Path) -> ConversionService:
    return ConversionService(output_dir=output_dir, input_dir=tmp_path / "input")


@pytest.fixture
def image_file(tmp_path: Path):
    """Factory writing a PNG (or any bytes) under tmp_path/src and returning its path."""
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)

    def make(name: str = "photo.png", data: bytes = None) -> Path:
        path = src / name
        path.write_bytes(png_bytes() if data is None else data)
        return path

    return make
