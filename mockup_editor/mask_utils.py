"""Free-hand removal strokes and their native-space hole description.

Strokes are captured in display space by a ``DrawingSession`` and turned
into a binary hole mask plus a padded bounding ``Region`` in native space
by ``build_hole``. Rasterization is binary (no anti-aliasing) with round
caps and round joins; pixel centres sit at half-integer coordinates, the
same convention a canvas uses.
"""
import math
from dataclasses import dataclass
from typing import NamedTuple, Tuple

import numpy as np
from skimage.draw import disk, line, polygon

from .coords import DisplayRect, native_scale, to_native
from .defaults import REGION_PADDING
from .errors import EmptyRegion
from .log_utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Stroke:
    points: Tuple[Tuple[float, float], ...]
    stroke_width: float

    def __post_init__(self):
        pts = tuple((float(x), float(y)) for x, y in self.points)
        if not pts:
            raise ValueError('a stroke needs at least one point')
        if not self.stroke_width > 0:
            raise ValueError(f'stroke width must be positive, got {self.stroke_width}')
        object.__setattr__(self, 'points', pts)


class DrawingSession:
    """Pointer-driven stroke capture.

    Pointer-down starts an active accumulator, pointer-move appends to it
    and pointer-up freezes it into the immutable ``strokes`` tuple. The
    active point list is never shared with callers.
    """

    def __init__(self):
        self._strokes = ()
        self._active = None
        self._active_width = None

    @property
    def strokes(self):
        return self._strokes

    @property
    def is_drawing(self) -> bool:
        return self._active is not None

    def preview(self):
        """Copy of the in-progress stroke's points (empty when idle)."""
        return list(self._active) if self._active is not None else []

    def pointer_down(self, x, y, stroke_width):
        if self._active is not None:
            self.pointer_up()
        self._active = [(float(x), float(y))]
        self._active_width = float(stroke_width)

    def pointer_move(self, x, y):
        if self._active is None:
            return
        self._active.append((float(x), float(y)))

    def pointer_up(self):
        if self._active is None:
            return None
        stroke = Stroke(tuple(self._active), self._active_width)
        self._active = None
        self._active_width = None
        self._strokes = self._strokes + (stroke,)
        return stroke

    def discard(self, strokes):
        """Drop the given strokes, keeping any drawn since they were taken."""
        used = set(map(id, strokes))
        self._strokes = tuple(s for s in self._strokes if id(s) not in used)

    def clear(self):
        self._strokes = ()
        self._active = None
        self._active_width = None


class Region(NamedTuple):
    """Axis-aligned native-pixel rectangle."""
    left: int
    top: int
    width: int
    height: int

    def as_dict(self):
        return {'left': self.left, 'top': self.top, 'width': self.width, 'height': self.height}


class HoleDescription(NamedTuple):
    mask: np.ndarray
    region: Region


def _stamp_pixel(mask, x, y):
    ix, iy = int(math.floor(x)), int(math.floor(y))
    if 0 <= iy < mask.shape[0] and 0 <= ix < mask.shape[1]:
        mask[iy, ix] = True


def stamp_disk(mask, x, y, radius):
    """Fill every pixel whose centre lies strictly within ``radius`` of (x, y)."""
    if radius > 0:
        rr, cc = disk((y - 0.5, x - 0.5), radius, shape=mask.shape)
        mask[rr, cc] = True
    # a dot thinner than one pixel still marks the pixel under it
    _stamp_pixel(mask, x, y)


def stamp_segment(mask, p0, p1, radius):
    """Fill the rectangle of half-width ``radius`` around segment p0-p1 (no caps)."""
    (x0, y0), (x1, y1) = p0, p1
    length = math.hypot(x1 - x0, y1 - y0)
    if length == 0:
        return
    nx = -(y1 - y0) / length * radius
    ny = (x1 - x0) / length * radius
    xs = np.array([x0 + nx, x1 + nx, x1 - nx, x0 - nx]) - 0.5
    ys = np.array([y0 + ny, y1 + ny, y1 - ny, y0 - ny]) - 0.5
    rr, cc = polygon(ys, xs, shape=mask.shape)
    mask[rr, cc] = True
    # keep hairline strokes connected
    rr, cc = line(int(math.floor(y0)), int(math.floor(x0)), int(math.floor(y1)), int(math.floor(x1)))
    keep = (rr >= 0) & (rr < mask.shape[0]) & (cc >= 0) & (cc < mask.shape[1])
    mask[rr[keep], cc[keep]] = True


def rasterize_polyline(mask, points, width):
    """Draw a round-capped, round-joined binary polyline of ``width`` onto ``mask``."""
    radius = width / 2.0
    for x, y in points:
        stamp_disk(mask, x, y, radius)
    for p0, p1 in zip(points[:-1], points[1:]):
        stamp_segment(mask, p0, p1, radius)
    return mask


def padded_region(bounds, native_w, native_h, padding=REGION_PADDING) -> Region:
    """Expand (min_x, min_y, max_x, max_y) by ``padding`` and clamp to the image."""
    min_x, min_y, max_x, max_y = bounds
    left = max(0, int(math.floor(min_x - padding)))
    top = max(0, int(math.floor(min_y - padding)))
    right = min(int(native_w), int(math.ceil(max_x + padding)))
    bottom = min(int(native_h), int(math.ceil(max_y + padding)))
    return Region(left, top, max(0, right - left), max(0, bottom - top))


def build_hole(strokes, rect: DisplayRect, native_w, native_h, padding=REGION_PADDING) -> HoleDescription:
    """Rasterize display-space strokes into a native hole mask and padded region.

    Raises EmptyRegion (carrying the all-false mask) when there is nothing to
    heal: no strokes, or strokes that miss the image entirely.
    """
    mask = np.zeros((int(native_h), int(native_w)), bool)
    if not strokes:
        raise EmptyRegion('No strokes to heal', mask=mask)
    scale = native_scale(rect, native_w)
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for stroke in strokes:
        pts = [to_native(p, rect, native_w, native_h) for p in stroke.points]
        width = stroke.stroke_width * scale
        rasterize_polyline(mask, pts, width)
        # the region covers the painted extent, not just the centreline
        r = width / 2.0
        for x, y in pts:
            min_x, max_x = min(min_x, x - r), max(max_x, x + r)
            min_y, max_y = min(min_y, y - r), max(max_y, y + r)
    if not mask.any():
        raise EmptyRegion('Strokes do not touch the image', mask=mask)
    region = padded_region((min_x, min_y, max_x, max_y), native_w, native_h, padding)
    logger.info(f'Hole mask: {int(mask.sum())} px in {len(strokes)} stroke(s), region {region.as_dict()}')
    return HoleDescription(mask, region)
