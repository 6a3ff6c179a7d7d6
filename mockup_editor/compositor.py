"""Marks (placed overlay images) and flattening them onto the base image.

A mark's transform lives in display space and is always normalised to
``x, y, width, height, rotation``: scale from an interactive resize is
folded into width/height immediately. Rotation is in degrees, clockwise
on screen, around the mark's top-left corner. Export rescales every
transform by ``native_w / rect.width`` so the output does not depend on
the size of the editing viewport.
"""
import math
from dataclasses import dataclass

import cv2
import numpy as np

from .coords import DisplayRect, native_scale, to_native
from .defaults import (EXPORT_FORMAT, EXPORT_QUALITY, MARK_CASCADE_ORIGIN, MARK_CASCADE_STEP,
                       MARK_MAX_DISPLAY, MARK_MIN_SIZE)
from .log_utils import get_logger
from .pixel_buffer import PixelBuffer, encode_image

logger = get_logger(__name__)


@dataclass
class Mark:
    id: str
    pixels: PixelBuffer
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0

    @classmethod
    def place(cls, mark_id, pixels: PixelBuffer, index=0, max_size=MARK_MAX_DISPLAY):
        """Fit ``pixels`` inside a ``max_size`` box and cascade it by ``index``."""
        if pixels.width == 0 or pixels.height == 0:
            raise ValueError(f'overlay {mark_id} is empty')
        ratio = min(max_size / pixels.width, max_size / pixels.height)
        offset = MARK_CASCADE_ORIGIN + index * MARK_CASCADE_STEP
        return cls(mark_id, pixels, float(offset), float(offset),
                   pixels.width * ratio, pixels.height * ratio, 0.0)

    def move_to(self, x, y):
        self.x, self.y = float(x), float(y)

    def apply_transform(self, x, y, scale_x=1.0, scale_y=1.0, rotation=None):
        """Fold an interactive transform into the mark.

        Sizes below ``MARK_MIN_SIZE`` are clamped up to it.
        """
        self.x, self.y = float(x), float(y)
        self.width = max(MARK_MIN_SIZE, self.width * float(scale_x))
        self.height = max(MARK_MIN_SIZE, self.height * float(scale_y))
        if rotation is not None:
            self.rotation = float(rotation)

    def native_transform(self, rect: DisplayRect, native_w):
        """(x, y, width, height, rotation) in native pixels."""
        scale = native_scale(rect, native_w)
        nx, ny = to_native((self.x, self.y), rect, native_w)
        return nx, ny, self.width * scale, self.height * scale, self.rotation


def _premultiplied(rgba):
    out = rgba.astype(np.float32)
    out[..., :3] *= out[..., 3:4] / 255.0
    return out


def place_mark(mark: Mark, rect: DisplayRect, native_w, native_h):
    """Render one mark into a native-size premultiplied float32 RGBA layer."""
    x, y, w, h, rotation = mark.native_transform(rect, native_w)
    tw, th = max(1, int(round(w))), max(1, int(round(h)))
    src = mark.pixels.samples
    # Downscaling -> Area (best quality), otherwise Linear
    interp = cv2.INTER_AREA if tw < src.shape[1] or th < src.shape[0] else cv2.INTER_LINEAR
    resized = _premultiplied(cv2.resize(src, (tw, th), interpolation=interp))
    sx, sy = w / tw, h / th
    theta = math.radians(rotation)
    c, s = math.cos(theta), math.sin(theta)
    M = np.array([[c * sx, -s * sy, x],
                  [s * sx, c * sy, y]], np.float64)
    return cv2.warpAffine(resized, M, (int(native_w), int(native_h)), flags=cv2.INTER_LINEAR,
                          borderMode=cv2.BORDER_CONSTANT, borderValue=(0, 0, 0, 0))


def composite(base: PixelBuffer, marks, rect: DisplayRect) -> PixelBuffer:
    """Flatten ``marks`` (in list order, later on top) over ``base`` at native size."""
    out = base.samples.astype(np.float32)
    for mark in marks:
        layer = place_mark(mark, rect, base.width, base.height)
        a_s = layer[..., 3:4] / 255.0
        a_d = out[..., 3:4] / 255.0
        a_o = a_s + a_d * (1.0 - a_s)
        rgb = layer[..., :3] + out[..., :3] * a_d * (1.0 - a_s)
        out[..., :3] = np.divide(rgb, a_o, out=np.zeros_like(rgb), where=a_o > 0)
        out[..., 3:4] = a_o * 255.0
    flat = np.clip(np.rint(out), 0, 255).astype(np.uint8)
    logger.info(f'Composited {len(marks)} mark(s) onto {base.width}x{base.height}')
    return PixelBuffer(flat)


def export_image(base: PixelBuffer, marks, rect: DisplayRect, fmt=EXPORT_FORMAT,
                 quality=EXPORT_QUALITY, path=None) -> bytes:
    """Composite and encode; also write to ``path`` when given."""
    data = encode_image(composite(base, marks, rect), fmt=fmt, quality=quality)
    if path:
        with open(path, 'wb') as f:
            f.write(data)
        logger.info(f'Exported {len(data)} bytes to {path}')
    return data
