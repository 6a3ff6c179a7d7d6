import os
import tempfile

# keep test runs from writing into the repository's logs/ directory
os.environ.setdefault('MOCKUP_EDITOR_LOG_DIR', os.path.join(tempfile.gettempdir(), 'mockup_editor_test_logs'))

import numpy as np
import pytest
import requests

from mockup_editor.pixel_buffer import PixelBuffer

BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)


@pytest.fixture
def blue_image():
    return PixelBuffer.solid(100, 100, BLUE)


@pytest.fixture
def noisy_image():
    rng = np.random.default_rng(7)
    arr = rng.integers(0, 256, size=(40, 50, 4), dtype=np.uint8)
    arr[..., 3] = 255
    return PixelBuffer(arr)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason='OK', content=b''):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason
        self.content = content

    def json(self):
        if self._payload is None:
            raise ValueError('no JSON')
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'HTTP {self.status_code}')


class FakeHttp:
    """Records calls and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, **kwargs):
        return self._next('POST', url, kwargs)

    def get(self, url, **kwargs):
        return self._next('GET', url, kwargs)
