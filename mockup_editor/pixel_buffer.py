"""RGBA pixel buffers plus decoding/encoding helpers.

A ``PixelBuffer`` wraps one ``H x W x 4`` uint8 numpy array in RGBA order
(row-major, so ``samples.size == width * height * 4`` always holds).
Decoding goes through OpenCV (IMREAD_UNCHANGED, then converted to RGBA);
encoding goes through Pillow.
"""
import base64
import io
import os
import threading
import time
from concurrent.futures import CancelledError, ThreadPoolExecutor, TimeoutError as FutureTimeout

import cv2
import numpy as np
import requests
from PIL import Image

from .defaults import DECODE_TIMEOUT_S
from .errors import DecodeFailed
from .log_utils import get_logger

logger = get_logger(__name__)


class PixelBuffer:
    """Owned RGBA8 raster. Stages either return a new buffer or mutate and return self."""

    __slots__ = ('samples',)

    def __init__(self, samples):
        arr = np.asarray(samples)
        if arr.dtype != np.uint8 or arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f'expected HxWx4 uint8 samples, got {arr.dtype} {arr.shape}')
        self.samples = np.ascontiguousarray(arr)

    @property
    def width(self) -> int:
        return int(self.samples.shape[1])

    @property
    def height(self) -> int:
        return int(self.samples.shape[0])

    @property
    def shape(self):
        return self.height, self.width

    @classmethod
    def solid(cls, width, height, rgba=(0, 0, 0, 255)):
        if width < 0 or height < 0:
            raise ValueError(f'negative size {width}x{height}')
        arr = np.empty((int(height), int(width), 4), np.uint8)
        arr[...] = np.asarray(rgba, np.uint8)
        return cls(arr)

    @classmethod
    def from_rgb(cls, rgb, alpha=255):
        """Wrap an HxWx3 RGB (or HxW gray) uint8 array as an opaque buffer."""
        rgb = np.asarray(rgb, np.uint8)
        if rgb.ndim == 2:
            rgb = cv2.cvtColor(rgb, cv2.COLOR_GRAY2RGB)
        out = np.empty(rgb.shape[:2] + (4,), np.uint8)
        out[..., :3] = rgb
        out[..., 3] = alpha
        return cls(out)

    def copy(self):
        return PixelBuffer(self.samples.copy())

    def has_transparency(self) -> bool:
        return bool((self.samples[..., 3] < 255).any())

    def __repr__(self):
        return f'PixelBuffer({self.width}x{self.height})'


def _to_rgba(img):
    """Convert an OpenCV-decoded array (gray/BGR/BGRA, any depth) to RGBA uint8."""
    if img.dtype == np.uint16:
        img = (img // 257).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = cv2.normalize(img, None, alpha=0, beta=255, norm_type=cv2.NORM_MINMAX).astype(np.uint8)
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)


def decode_bytes(data) -> PixelBuffer:
    """Decode encoded image bytes (PNG, JPEG, ...) into a PixelBuffer."""
    arr = np.frombuffer(bytes(data), np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED) if arr.size else None
    if img is None:
        raise DecodeFailed('not a decodable image')
    return PixelBuffer(_to_rgba(img))


def encode_image(buf: PixelBuffer, fmt='PNG', quality=90) -> bytes:
    """Encode a buffer with Pillow. JPEG drops the alpha channel."""
    img = Image.fromarray(buf.samples, 'RGBA')
    fmt = fmt.upper()
    out = io.BytesIO()
    if fmt in ('JPEG', 'JPG'):
        img.convert('RGB').save(out, format='JPEG', quality=int(quality))
    else:
        img.save(out, format=fmt)
    return out.getvalue()


class _DecodeJob:
    """One queued decode. Its clock starts when a worker picks it up."""

    __slots__ = ('_load', 'source', 'started', 'started_at')

    def __init__(self, load, source):
        self._load = load
        self.source = source
        self.started = threading.Event()
        self.started_at = None

    def __call__(self):
        self.started_at = time.monotonic()
        self.started.set()
        return self._load(self.source)


class ImageDecoder:
    """Loads overlay sources (bytes, file path, http(s) URL or data: URL).

    Every decode runs on a worker thread and is bounded by ``timeout``
    seconds, counted from the moment a worker starts on it, so decodes
    queued behind a busy pool keep their full budget. Anything that goes
    wrong surfaces as ``DecodeFailed``.
    """

    def __init__(self, timeout=DECODE_TIMEOUT_S, http=None, max_workers=4):
        self.timeout = float(timeout)
        self.http = http if http is not None else requests
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='decode')

    def _read_source(self, source) -> bytes:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source)
        source = str(source)
        if source.startswith('data:'):
            _, _, payload = source.partition(',')
            return base64.b64decode(payload)
        if source.startswith(('http://', 'https://')):
            response = self.http.get(source, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        if not os.path.exists(source):
            raise FileNotFoundError(source)
        with open(source, 'rb') as f:
            return f.read()

    def _load(self, source) -> PixelBuffer:
        return decode_bytes(self._read_source(source))

    def submit(self, source):
        job = _DecodeJob(self._load, source)
        future = self._executor.submit(job)
        future.decode_job = job
        return future

    def wait(self, future, timeout=None) -> PixelBuffer:
        """Wait for a submitted decode, translating every failure into DecodeFailed.

        ``timeout`` (default ``self.timeout``) is measured from the start of
        the decode, not from the call.
        """
        bound = self.timeout if timeout is None else timeout
        job = getattr(future, 'decode_job', None)
        try:
            remaining = bound
            if job is not None:
                while not job.started.wait(0.05):
                    if future.done():
                        break
                if job.started_at is not None:
                    remaining = max(0.0, bound - (time.monotonic() - job.started_at))
            return future.result(timeout=remaining)
        except FutureTimeout:
            future.cancel()
            raise DecodeFailed(f'decode timed out after {bound:.1f}s')
        except CancelledError:
            raise DecodeFailed('decode cancelled')
        except DecodeFailed:
            raise
        except (OSError, ValueError, cv2.error, requests.RequestException) as e:
            raise DecodeFailed(str(e)) from e

    def decode(self, source) -> PixelBuffer:
        return self.wait(self.submit(source))

    def close(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
