import threading

import numpy as np
import pytest

from mockup_editor.config import HealingProviderConfig
from mockup_editor.coords import DisplayRect
from mockup_editor.errors import (EmptyRegion, HealingCancelled, HealingTimeout, ProviderRejected,
                                  ProviderUnavailable)
from mockup_editor.healing import HealingOrchestrator, HealState
from mockup_editor.mask_utils import Region, Stroke
from mockup_editor.pixel_buffer import PixelBuffer
from mockup_editor.remote_provider import InpaintingProvider

IDENTITY = DisplayRect(0.0, 0.0, 100.0, 100.0)
STROKES = (Stroke(((50.0, 50.0),), 10.0),)


class RecordingProvider:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def heal(self, image, region):
        self.calls.append((image, region))
        if self.error is not None:
            raise self.error
        return self.result if self.result is not None else PixelBuffer.solid(image.width, image.height)


class ExplodingHealer:
    def heal(self, image, mask):
        raise AssertionError('local fill must not run')


def test_local_path_without_provider(blue_image):
    damaged = blue_image.copy()
    damaged.samples[46:54, 46:54] = (255, 0, 0, 255)
    orch = HealingOrchestrator()
    healed = orch.heal(damaged, STROKES, IDENTITY)
    assert orch.state is HealState.DONE
    assert not orch.uses_remote
    assert np.array_equal(healed.samples, blue_image.samples)
    assert damaged.samples[50, 50].tolist() == [255, 0, 0, 255]


def test_empty_strokes_fail_without_touching_image(blue_image):
    before = blue_image.samples.copy()
    orch = HealingOrchestrator()
    with pytest.raises(EmptyRegion):
        orch.heal(blue_image, (), IDENTITY)
    assert orch.state is HealState.FAILED
    assert isinstance(orch.last_error, EmptyRegion)
    assert np.array_equal(blue_image.samples, before)


def test_remote_path_gets_padded_region(blue_image):
    result = PixelBuffer.solid(100, 100, (1, 2, 3, 255))
    provider = RecordingProvider(result=result)
    orch = HealingOrchestrator(provider=provider)
    assert orch.heal(blue_image, STROKES, IDENTITY) is result
    assert orch.state is HealState.DONE
    sent_image, region = provider.calls[0]
    assert region == Region(35, 35, 30, 30)
    assert sent_image is not blue_image
    assert np.array_equal(sent_image.samples, blue_image.samples)


@pytest.mark.parametrize('error', [ProviderUnavailable('down'), ProviderRejected(401, 'bad key'),
                                   HealingTimeout('slow')])
def test_remote_failure_does_not_fall_back(blue_image, error):
    orch = HealingOrchestrator(provider=RecordingProvider(error=error), local_healer=ExplodingHealer())
    with pytest.raises(type(error)):
        orch.heal(blue_image, STROKES, IDENTITY)
    assert orch.state is HealState.FAILED
    assert orch.last_error is error


def test_provider_result_size_is_checked(blue_image):
    orch = HealingOrchestrator(provider=RecordingProvider(result=PixelBuffer.solid(10, 10)))
    with pytest.raises(ProviderRejected):
        orch.heal(blue_image, STROKES, IDENTITY)


def test_cancelled_before_result(blue_image):
    cancel = threading.Event()
    cancel.set()
    orch = HealingOrchestrator()
    with pytest.raises(HealingCancelled):
        orch.heal(blue_image, STROKES, IDENTITY, cancel_event=cancel)
    assert orch.state is HealState.FAILED


def test_config_selects_provider():
    assert HealingOrchestrator(config=HealingProviderConfig()).provider is None
    configured = HealingProviderConfig(api_key='ak', secret_key='sk')
    assert isinstance(HealingOrchestrator(config=configured).provider, InpaintingProvider)


def test_explicit_provider_wins_over_config():
    provider = RecordingProvider()
    orch = HealingOrchestrator(config=HealingProviderConfig(api_key='ak', secret_key='sk'), provider=provider)
    assert orch.provider is provider


def test_provider_breaking_its_contract_still_fails_cleanly(blue_image):
    bug = RuntimeError('provider bug')
    orch = HealingOrchestrator(provider=RecordingProvider(error=bug), local_healer=ExplodingHealer())
    with pytest.raises(ProviderRejected) as info:
        orch.heal(blue_image, STROKES, IDENTITY)
    assert info.value.code == 'bad_response'
    assert info.value.__cause__ is bug
    assert orch.state is HealState.FAILED
    assert orch.last_error is info.value


def test_provider_returning_garbage_fails(blue_image):
    class NoneProvider:
        def heal(self, image, region):
            return None

    orch = HealingOrchestrator(provider=NoneProvider())
    with pytest.raises(AttributeError):
        orch.heal(blue_image, STROKES, IDENTITY)
    assert orch.state is HealState.FAILED
    assert isinstance(orch.last_error, AttributeError)


def test_unexpected_local_error_ends_in_failed(blue_image):
    class BrokenHealer:
        def heal(self, image, mask):
            raise MemoryError('out of memory')

    orch = HealingOrchestrator(local_healer=BrokenHealer())
    with pytest.raises(MemoryError):
        orch.heal(blue_image, STROKES, IDENTITY)
    assert orch.state is HealState.FAILED
