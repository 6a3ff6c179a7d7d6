"""Background keying for overlay images.

Heuristic, not segmentation: the top-left pixel is taken as the
background colour and every pixel within ``tolerance`` of it on all three
channels becomes fully transparent. Foreground areas that happen to share
that colour are erased too; this is an accepted limitation.
"""
import numpy as np

from .defaults import KEY_TOLERANCE
from .errors import DecodeFailed
from .log_utils import get_logger
from .pixel_buffer import ImageDecoder, PixelBuffer

logger = get_logger(__name__)


def key_background(buf: PixelBuffer, tolerance=KEY_TOLERANCE) -> PixelBuffer:
    """Make the uniform background of ``buf`` transparent, in place.

    Buffers that already carry any alpha < 255 are returned untouched, which
    also makes the operation idempotent. Returns ``buf``.
    """
    if buf.width == 0 or buf.height == 0:
        return buf
    if buf.has_transparency():
        logger.info('Keying skipped: overlay already has transparency')
        return buf
    rgb = buf.samples[..., :3].astype(np.int16)
    bg = rgb[0, 0]
    close = (np.abs(rgb - bg) < int(tolerance)).all(axis=2)
    buf.samples[..., 3][close] = 0
    logger.info(f'Keyed background {tuple(int(c) for c in bg)}: {int(close.sum())} px cleared')
    return buf


def key_overlay(source, decoder: ImageDecoder, tolerance=KEY_TOLERANCE):
    """Decode ``source`` and key it; on decode failure return ``source`` unchanged."""
    try:
        buf = decoder.decode(source)
    except DecodeFailed as e:
        logger.warning(f'Overlay decode failed, keeping original: {e}')
        return source
    return key_background(buf, tolerance)


def key_overlays(sources, decoder: ImageDecoder, tolerance=KEY_TOLERANCE):
    """Decode several overlays concurrently, each with its own time budget.

    Results come back in input order; each item is either a keyed
    PixelBuffer or, when decoding failed, the original source.
    """
    futures = [decoder.submit(s) for s in sources]
    results = []
    for source, future in zip(sources, futures):
        try:
            buf = decoder.wait(future)
        except DecodeFailed as e:
            logger.warning(f'Overlay decode failed, keeping original: {e}')
            results.append(source)
            continue
        results.append(key_background(buf, tolerance))
    return results
