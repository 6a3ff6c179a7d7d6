"""Display <-> native coordinate mapping.

Display space is where the canvas draws the letterboxed base image;
native space is the base image's own pixel grid. The scale between the
two is uniform: ``native_w / rect.width``.
"""
from typing import NamedTuple, Tuple

from .errors import DegenerateGeometry


class DisplayRect(NamedTuple):
    x: float
    y: float
    width: float
    height: float


def fit_rect(container_w, container_h, native_w, native_h) -> DisplayRect:
    """Aspect-preserving letterbox fit of a native image inside a container.

    A container wider (relatively) than the image is height-bound and the
    image is centered horizontally; otherwise it is width-bound and
    centered vertically.
    """
    if container_w <= 0 or container_h <= 0 or native_w <= 0 or native_h <= 0:
        raise DegenerateGeometry(
            f'cannot fit {native_w}x{native_h} into {container_w}x{container_h}')
    container_ratio = float(container_w) / float(container_h)
    img_ratio = float(native_w) / float(native_h)
    if container_ratio > img_ratio:
        h = float(container_h)
        w = h * img_ratio
        return DisplayRect((container_w - w) / 2.0, 0.0, w, h)
    w = float(container_w)
    h = w / img_ratio
    return DisplayRect(0.0, (container_h - h) / 2.0, w, h)


def native_scale(rect: DisplayRect, native_w) -> float:
    if rect.width <= 0:
        raise DegenerateGeometry(f'display rect has no width: {rect}')
    return float(native_w) / float(rect.width)


def to_native(point, rect: DisplayRect, native_w, native_h=None) -> Tuple[float, float]:
    """Map a display-space point into native pixel space (floats, unclamped)."""
    scale = native_scale(rect, native_w)
    return (point[0] - rect.x) * scale, (point[1] - rect.y) * scale


def to_display(point, rect: DisplayRect, native_w, native_h=None) -> Tuple[float, float]:
    """Inverse of ``to_native``."""
    scale = native_scale(rect, native_w)
    return point[0] / scale + rect.x, point[1] / scale + rect.y
