import numpy as np
import pytest

from mockup_editor.compositor import Mark, composite, export_image
from mockup_editor.coords import fit_rect
from mockup_editor.pixel_buffer import PixelBuffer, decode_bytes

from conftest import RED, WHITE


@pytest.fixture
def base():
    return PixelBuffer.solid(200, 100, WHITE)


@pytest.fixture
def rect(base):
    # 400x200 container -> display is exactly twice the native size
    return fit_rect(400, 200, base.width, base.height)


def _red_mark(x, y, w, h, rotation=0.0, size=(10, 10)):
    return Mark('mark-0', PixelBuffer.solid(size[0], size[1], RED), x, y, w, h, rotation)


def test_place_fits_and_cascades():
    mark = Mark.place('mark-3', PixelBuffer.solid(300, 150), index=2)
    assert (mark.width, mark.height) == pytest.approx((150.0, 75.0))
    assert (mark.x, mark.y) == (110.0, 110.0)
    assert mark.rotation == 0.0


def test_place_rejects_empty_overlay():
    with pytest.raises(ValueError):
        Mark.place('m', PixelBuffer.solid(0, 5))


def test_apply_transform_bakes_scale_with_minimum():
    mark = _red_mark(0, 0, 40, 20)
    mark.apply_transform(5, 6, scale_x=1.5, scale_y=1.5, rotation=30)
    assert (mark.x, mark.y, mark.width, mark.height, mark.rotation) == (5, 6, 60, 30, 30)
    mark.apply_transform(5, 6, scale_x=0.01, scale_y=0.01)
    assert (mark.width, mark.height) == (5, 5)
    assert mark.rotation == 30


def test_native_transform(rect):
    mark = _red_mark(100, 40, 20, 20, rotation=15)
    assert mark.native_transform(rect, 200) == pytest.approx((50, 20, 10, 10, 15))


def test_composite_places_mark_at_native_position(base, rect):
    out = composite(base, [_red_mark(100, 40, 20, 20)], rect)
    assert (out.width, out.height) == (200, 100)
    assert out.samples[25, 55].tolist() == list(RED)
    assert out.samples[5, 5].tolist() == list(WHITE)
    assert out.samples[25, 70].tolist() == list(WHITE)
    # base is not modified
    assert base.samples[25, 55].tolist() == list(WHITE)


def test_composite_rotates_clockwise_about_top_left(base, rect):
    mark = _red_mark(100, 40, 40, 20, rotation=90, size=(20, 10))
    out = composite(base, [mark], rect)
    assert out.samples[30, 45].tolist() == list(RED)
    assert out.samples[25, 55].tolist() == list(WHITE)


def test_transparent_mark_pixels_keep_base(base, rect):
    pixels = PixelBuffer.solid(10, 10, RED)
    pixels.samples[:, :5, 3] = 0
    out = composite(base, [Mark('m', pixels, 100, 40, 20, 20)], rect)
    assert out.samples[25, 52].tolist() == list(WHITE)
    assert out.samples[25, 57].tolist() == list(RED)


def test_export_is_independent_of_viewport(base):
    small = fit_rect(400, 200, 200, 100)
    large = fit_rect(800, 600, 200, 100)
    a = composite(base, [_red_mark(100, 40, 20, 20)], small)
    b = composite(base, [_red_mark(200, 180, 40, 40)], large)
    assert np.array_equal(a.samples, b.samples)


def test_export_encodes_at_native_size(base, rect, tmp_path):
    path = tmp_path / 'mockup.png'
    data = export_image(base, [_red_mark(100, 40, 20, 20)], rect, fmt='PNG', path=str(path))
    assert path.read_bytes() == data
    decoded = decode_bytes(data)
    assert (decoded.width, decoded.height) == (200, 100)
    assert decoded.samples[25, 55].tolist() == list(RED)

    jpeg = export_image(base, [], rect)
    assert jpeg[:2] == b'\xff\xd8'
    assert decode_bytes(jpeg).shape == (100, 200)
