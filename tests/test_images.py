import io
from pathlib import Path
from typing import List

import pytest
import requests
from PIL import Image

from feed_printer.core.errors import ImageProcessingError
from feed_printer.printing.compose import Cut, RasterBlock
from feed_printer.printing.dither import BinaryRaster
from feed_printer.printing.images import fetch_image, load_staged, prepare_image, print_image_url, stage_raster


def _png_bytes(size=(40, 10)) -> bytes:
    img = Image.new("L", size, 0)
    for x in range(size[0]):
        for y in range(size[1]):
            img.putpixel((x, y), int(255 * x / (size[0] - 1)))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FakeResponse:
    def __init__(self, content: bytes = b"", status: int = 200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.urls: List[str] = []

    def get(self, url, timeout=None, **kwargs):
        self.urls.append(url)
        if self.exc:
            raise self.exc
        return self.response


class FakeConnection:
    def __init__(self):
        self.jobs = []

    def print_job(self, job):
        self.jobs.append(job)
        return 0


def test_stage_and_reload_binary_raster(tmp_path):
    raster = BinaryRaster(4, 2, bytes([0, 255, 255, 0, 255, 0, 0, 255]))
    path = stage_raster(raster, str(tmp_path / "scratch"))
    assert Path(path).exists()
    assert Path(path).name.startswith("temp_image_") and path.endswith(".png")
    assert load_staged(path) == raster


def test_prepare_image_produces_binary_png(tmp_path):
    path = prepare_image(_png_bytes(), str(tmp_path))
    with Image.open(path) as img:
        assert img.size == (40, 10)
        assert set(img.convert("L").getdata()) <= {0, 255}


def test_fetch_image_wraps_http_errors():
    session = FakeSession(response=FakeResponse(status=404))
    with pytest.raises(ImageProcessingError):
        fetch_image("https://example.invalid/a.png", session=session)

    session = FakeSession(exc=requests.ConnectionError("down"))
    with pytest.raises(ImageProcessingError):
        fetch_image("https://example.invalid/a.png", session=session)


def test_print_image_url_prints_one_image_then_cut(tmp_path):
    session = FakeSession(response=FakeResponse(_png_bytes((600, 30))))
    connection = FakeConnection()

    path = print_image_url(connection, "https://example.invalid/p.png", str(tmp_path), max_width=300, session=session)

    assert session.urls == ["https://example.invalid/p.png"]
    assert Path(path).exists()
    assert len(connection.jobs) == 1
    job = connection.jobs[0]
    assert job.kind == "image"
    assert [type(d) for d in job.directives] == [RasterBlock, Cut]
    assert job.directives[0].raster.width == 300


def test_print_image_url_rejects_undecodable_payload(tmp_path):
    session = FakeSession(response=FakeResponse(b"<html>not an image</html>"))
    connection = FakeConnection()
    with pytest.raises(ImageProcessingError):
        print_image_url(connection, "https://example.invalid/x", str(tmp_path), session=session)
    assert connection.jobs == []
