"""
Floyd-Steinberg halftoning for thermal output.

Thermal heads only burn or skip a dot, so continuous-tone images are reduced to
pure black/white by error diffusion before they are sent to the printer. The
core (`floyd_steinberg`) is a pure function over a greyscale byte buffer; the
Pillow helpers around it handle decoding, resizing and re-encoding.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from feed_printer.core.errors import ImageProcessingError

logger = logging.getLogger(__name__)

THRESHOLD = 128
BLACK = 0
WHITE = 255


@dataclass(frozen=True)
class RasterImage:
    """Single-channel greyscale raster, one byte (0-255) per pixel, row-major."""

    width: int
    height: int
    data: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("raster dimensions must be non-negative")
        if len(self.data) != self.width * self.height:
            raise ValueError(
                f"raster buffer holds {len(self.data)} bytes, expected {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class BinaryRaster(RasterImage):
    """A RasterImage whose pixels are all 0 or 255."""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not set(self.data) <= {BLACK, WHITE}:
            raise ValueError("binary raster may only contain 0 and 255")

    def to_image(self) -> Image.Image:
        return Image.frombytes("L", (self.width, self.height), self.data)


def floyd_steinberg(raster: RasterImage) -> BinaryRaster:
    """
    Dither a greyscale raster to black/white with Floyd-Steinberg error diffusion.

    Pixels are visited top-to-bottom, left-to-right. Each (error-adjusted) value
    is thresholded at 128 and the quantization error is pushed into the
    unvisited neighbours of the same working buffer:

        right 7/16, below-left 3/16, below 5/16, below-right 1/16

    Neighbours outside the raster are skipped. The working buffer holds signed
    floats so accumulated error may leave [0, 255] before that pixel is visited.
    """
    width, height = raster.width, raster.height
    work = [float(v) for v in raster.data]
    out = bytearray(width * height)

    for y in range(height):
        row = y * width
        has_below = y + 1 < height
        for x in range(width):
            i = row + x
            value = work[i]
            new = BLACK if value < THRESHOLD else WHITE
            out[i] = new
            error = value - new
            if error == 0:
                continue
            has_right = x + 1 < width
            if has_right:
                work[i + 1] += error * 7 / 16
            if has_below:
                below = i + width
                if x > 0:
                    work[below - 1] += error * 3 / 16
                work[below] += error * 5 / 16
                if has_right:
                    work[below + 1] += error * 1 / 16

    return BinaryRaster(width, height, bytes(out))


def raster_from_image(img: Image.Image, max_width: Optional[int] = None) -> RasterImage:
    """
    Convert a Pillow image to a greyscale RasterImage.

    Transparent areas are flattened onto white. When max_width is given and the
    image is wider, it is scaled down keeping the aspect ratio.
    """
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        img = Image.alpha_composite(background, rgba)
    grey = img.convert("L")
    if max_width and grey.width > max_width:
        new_h = max(1, round(grey.height * max_width / grey.width))
        grey = grey.resize((max_width, new_h), Image.Resampling.LANCZOS)
    return RasterImage(grey.width, grey.height, grey.tobytes())


def load_raster(data: bytes, max_width: Optional[int] = None) -> RasterImage:
    """
    Decode encoded image bytes (any Pillow-supported format) to a RasterImage.

    Raises:
        ImageProcessingError if the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return raster_from_image(img, max_width=max_width)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Could not decode image ({len(data)} bytes): {e}") from e


def dither_image(img: Image.Image, max_width: Optional[int] = None) -> BinaryRaster:
    """Convenience: Pillow image in, dithered BinaryRaster out."""
    raster = raster_from_image(img, max_width=max_width)
    logger.debug("Dithering %dx%d raster", raster.width, raster.height)
    return floyd_steinberg(raster)


__all__ = [
    "BLACK",
    "THRESHOLD",
    "WHITE",
    "BinaryRaster",
    "RasterImage",
    "dither_image",
    "floyd_steinberg",
    "load_raster",
    "raster_from_image",
]
