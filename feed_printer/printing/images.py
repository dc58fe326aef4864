"""
Remote image printing: fetch -> dither -> stage as PNG -> print.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from feed_printer.core.config import ensure_dir
from feed_printer.core.errors import ImageProcessingError
from feed_printer.printing.compose import compose_image
from feed_printer.printing.connection import PrinterConnection
from feed_printer.printing.dither import BinaryRaster, floyd_steinberg, load_raster

logger = logging.getLogger(__name__)


def fetch_image(url: str, timeout: float = 30, session: Optional[requests.Session] = None) -> bytes:
    """
    Download raw image bytes.

    Raises:
        ImageProcessingError on any HTTP or connection failure.
    """
    logger.info(f"Downloading image from URL: {url}")
    http = session or requests
    try:
        r = http.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        raise ImageProcessingError(f"Image download failed for {url}: {e}") from e
    return r.content


def stage_raster(raster: BinaryRaster, temp_dir: str) -> str:
    """
    Encode a dithered raster as PNG into the scratch directory and return its path.
    """
    ensure_dir(temp_dir)
    path = Path(temp_dir) / f"temp_image_{int(time.time() * 1000)}.png"
    try:
        raster.to_image().save(path, format="PNG")
    except OSError as e:
        raise ImageProcessingError(f"Could not stage image at {path}: {e}") from e
    logger.info(f"Processed image saved to: {path}")
    return str(path)


def load_staged(path: str) -> BinaryRaster:
    """
    Read a staged PNG back as a BinaryRaster.
    """
    try:
        with Image.open(path) as img:
            grey = img.convert("L")
            return BinaryRaster(grey.width, grey.height, grey.tobytes())
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Staged image {path} is unreadable: {e}") from e


def prepare_image(data: bytes, temp_dir: str, max_width: Optional[int] = None) -> str:
    """
    Decode, dither and stage encoded image bytes. Returns the staged PNG path.
    """
    raster = load_raster(data, max_width=max_width)
    logger.info(f"Image decoded ({raster.width}x{raster.height}), applying dithering")
    binary = floyd_steinberg(raster)
    return stage_raster(binary, temp_dir)


def print_image_url(
    connection: PrinterConnection,
    url: str,
    temp_dir: str,
    *,
    max_width: Optional[int] = None,
    timeout: float = 30,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Fetch an image, dither it, stage it and print it. Returns the staged path.

    ImageProcessingError and TransportError propagate to the caller.
    """
    data = fetch_image(url, timeout=timeout, session=session)
    path = prepare_image(data, temp_dir, max_width=max_width)
    logger.info(f"Attempting to print image from path: {path}")
    connection.print_job(compose_image(load_staged(path)))
    return path


__all__ = ["fetch_image", "load_staged", "prepare_image", "print_image_url", "stage_raster"]
