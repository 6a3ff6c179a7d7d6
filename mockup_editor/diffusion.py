"""Local diffusion fill: the fallback healer used without a remote provider.

This is a low-fidelity blur-fill, not texture synthesis. Each pass visits
the still-open hole pixels in row-major order and sets every pixel that
has at least one non-hole 8-neighbour to the rounded mean RGB of those
neighbours. A pixel closes once it had ``MIN_RESOLVE_NEIGHBORS``
contributors, or unconditionally after ``RELAX_AFTER_PASS`` passes, and
closed pixels feed the rest of the same pass. Rounding is half-to-even.
Scan order and rounding are fixed so identical inputs give identical
outputs.

Within a pass every row sees the rows above it already updated, so rows
are processed one at a time. For each row the seven contributions that
cannot change while the row is scanned (the rows above and below, and the
right-hand neighbour) are summed with numpy; only the left-hand neighbour
is added per pixel. Cost still grows with hole area times passes, so
multi-megapixel holes take seconds rather than milliseconds.
"""
import numpy as np

from .defaults import MAX_PASSES, MIN_RESOLVE_NEIGHBORS, RELAX_AFTER_PASS
from .errors import InvalidMask
from .log_utils import get_logger
from .pixel_buffer import PixelBuffer

logger = get_logger(__name__)


def _check_mask(image: PixelBuffer, mask):
    mask = np.asarray(mask)
    if mask.ndim != 2 or mask.shape != image.shape:
        raise InvalidMask(f'mask {mask.shape} does not match image {image.shape}')
    return mask.astype(bool, copy=False)


def _row_sums(rgb, open_, py):
    """Open-neighbour counts and RGB sums for row ``py`` of the padded arrays,
    leaving out the left-hand neighbour. Index ``i`` is padded column ``i + 1``."""
    up = open_[py - 1].astype(np.int64)
    down = open_[py + 1].astype(np.int64)
    right = open_[py, 2:].astype(np.int64)
    count = up[:-2] + up[1:-1] + up[2:] + down[:-2] + down[1:-1] + down[2:] + right
    above = rgb[py - 1] * up[:, None]
    below = rgb[py + 1] * down[:, None]
    total = (above[:-2] + above[1:-1] + above[2:] + below[:-2] + below[1:-1] + below[2:]
             + rgb[py, 2:] * right[:, None])
    return count, total


def diffuse_fill(image: PixelBuffer, mask, max_passes=MAX_PASSES,
                 relax_after=RELAX_AFTER_PASS, min_neighbors=MIN_RESOLVE_NEIGHBORS):
    """Return a new PixelBuffer with the masked pixels filled; ``image`` is not modified.

    Also returns the number of passes run and the number of hole pixels
    still open when the loop stopped: ``(healed, passes, remaining)``.
    """
    mask = _check_mask(image, mask)
    out = image.samples.copy()
    if not mask.any():
        return PixelBuffer(out), 0, 0

    # only the hole's bounding box plus a one-pixel ring is ever read
    ys, xs = np.nonzero(mask)
    y0, y1 = max(0, int(ys.min()) - 1), min(image.height, int(ys.max()) + 2)
    x0, x1 = max(0, int(xs.min()) - 1), min(image.width, int(xs.max()) + 2)
    h, w = y1 - y0, x1 - x0

    # padded by one closed, never-open cell on every side for out-of-bounds neighbours
    rgb = np.zeros((h + 2, w + 2, 3), np.int64)
    rgb[1:-1, 1:-1] = out[y0:y1, x0:x1, :3]
    hole = np.zeros((h + 2, w + 2), bool)
    hole[1:-1, 1:-1] = mask[y0:y1, x0:x1]
    open_ = np.zeros_like(hole)
    open_[1:-1, 1:-1] = ~hole[1:-1, 1:-1]
    touched = np.zeros_like(hole)

    passes = 0
    changes = True
    while passes < max_passes and changes:
        changes = False
        relaxed = passes > relax_after
        for py in np.flatnonzero(hole.any(axis=1)).tolist():
            count, total = _row_sums(rgb, open_, py)
            row_rgb, row_open = rgb[py], open_[py]
            for px in np.flatnonzero(hole[py]).tolist():
                c = int(count[px - 1])
                r, g, b = total[px - 1].tolist()
                if row_open[px - 1]:
                    c += 1
                    lr, lg, lb = row_rgb[px - 1].tolist()
                    r, g, b = r + lr, g + lg, b + lb
                if c == 0:
                    continue
                row_rgb[px] = (round(r / c), round(g / c), round(b / c))
                touched[py, px] = True
                if c >= min_neighbors or relaxed:
                    hole[py, px] = False
                    row_open[px] = True
                changes = True
        passes += 1

    patch = rgb[1:-1, 1:-1].astype(np.uint8)
    filled = touched[1:-1, 1:-1]
    region = out[y0:y1, x0:x1]
    region[..., :3][filled] = patch[filled]
    region[..., 3][filled] = 255
    remaining = int(hole.sum())
    logger.info(f'Diffusion fill: {int(mask.sum())} px, {passes} pass(es), {remaining} left open')
    return PixelBuffer(out), passes, remaining


class LocalDiffusionHealer:
    """Callable wrapper so the orchestrator can treat local healing like a provider.

    ``last_passes`` and ``last_remaining`` describe the most recent fill.
    """

    def __init__(self, max_passes=MAX_PASSES):
        self.max_passes = int(max_passes)
        self.last_passes = None
        self.last_remaining = None

    def heal(self, image: PixelBuffer, mask) -> PixelBuffer:
        healed, self.last_passes, self.last_remaining = diffuse_fill(image, mask, max_passes=self.max_passes)
        return healed
