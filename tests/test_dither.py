import io

import pytest
from PIL import Image

from feed_printer.core.errors import ImageProcessingError
from feed_printer.printing.dither import (
    BinaryRaster,
    RasterImage,
    dither_image,
    floyd_steinberg,
    load_raster,
)


def _uniform(width: int, height: int, value: int) -> RasterImage:
    return RasterImage(width, height, bytes([value]) * (width * height))


@pytest.mark.parametrize("value,expected", [(0, 0), (1, 0), (127, 0), (128, 255), (200, 255), (255, 255)])
def test_first_pixel_is_plain_threshold(value, expected):
    out = floyd_steinberg(RasterImage(1, 1, bytes([value])))
    assert out.data == bytes([expected])


# Only 0 and 255 survive as flat fields; any other grey level diffuses into a
# black/white mix, which test_mid_grey_preserves_average_tone covers.
def test_saturated_uniform_rasters_stay_uniform():
    black = floyd_steinberg(_uniform(17, 9, 0))
    white = floyd_steinberg(_uniform(17, 9, 255))
    assert set(black.data) == {0}
    assert set(white.data) == {255}


def test_output_is_binary_and_same_size():
    data = bytes((x * 7 + y * 13) % 256 for y in range(20) for x in range(31))
    out = floyd_steinberg(RasterImage(31, 20, data))
    assert (out.width, out.height) == (31, 20)
    assert len(out.data) == 31 * 20
    assert set(out.data) <= {0, 255}


def test_dithering_is_deterministic():
    data = bytes((x * x + 3 * y) % 256 for y in range(24) for x in range(24))
    raster = RasterImage(24, 24, data)
    assert floyd_steinberg(raster).data == floyd_steinberg(raster).data
    # input buffer untouched
    assert raster.data == data


def test_error_diffuses_to_right_neighbour():
    # 100 -> 0 leaves +100 error, 7/16 of it lifts the next 100 to 143.75 -> white
    out = floyd_steinberg(RasterImage(2, 1, bytes([100, 100])))
    assert out.data == bytes([0, 255])


def test_error_does_not_wrap_to_next_row():
    # Right-edge pixel error must not leak into the first pixel of the next row
    # except through the below / below-left taps.
    out = floyd_steinberg(RasterImage(1, 2, bytes([100, 60])))
    # below gets 5/16 * 100 = 31.25 -> 91.25 still black
    assert out.data == bytes([0, 0])


def test_negative_accumulation_is_kept_signed():
    # 200 -> 255 gives error -55; the neighbour 130 becomes ~105.9 and turns black
    out = floyd_steinberg(RasterImage(2, 1, bytes([200, 130])))
    assert out.data == bytes([255, 0])


def test_mid_grey_preserves_average_tone():
    out = floyd_steinberg(_uniform(32, 32, 64))
    mean = sum(out.data) / len(out.data)
    assert abs(mean - 64) < 16


def test_binary_raster_rejects_grey_values():
    with pytest.raises(ValueError):
        BinaryRaster(2, 1, bytes([0, 12]))


def test_raster_rejects_wrong_buffer_size():
    with pytest.raises(ValueError):
        RasterImage(3, 3, b"\x00" * 8)


def test_load_raster_converts_color_and_limits_width():
    img = Image.new("RGB", (100, 50), (255, 0, 0))
    buf = io.BytesIO()
    img.save(buf, format="PNG")

    raster = load_raster(buf.getvalue(), max_width=40)
    assert raster.width == 40
    assert raster.height == 20
    assert len(raster.data) == 40 * 20


def test_load_raster_rejects_garbage():
    with pytest.raises(ImageProcessingError):
        load_raster(b"definitely not an image")


def test_dither_image_flattens_transparency_to_white():
    img = Image.new("RGBA", (8, 8), (0, 0, 0, 0))
    out = dither_image(img)
    assert set(out.data) == {255}
    assert out.to_image().mode == "L"
