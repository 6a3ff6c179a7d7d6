"""Healing orchestration: remote provider when configured, local fill otherwise.

Per invocation the orchestrator moves through
``IDLE -> PREPARING -> (REMOTE | LOCAL) -> DONE | FAILED``. Only the absence
of a provider routes to the local fill; a provider that fails makes the
invocation fail so the caller can report it.
"""
import threading
from enum import Enum
from typing import Optional, Protocol

from .config import HealingProviderConfig
from .diffusion import LocalDiffusionHealer
from .errors import HealingCancelled, HealingProviderError, ProviderRejected
from .log_utils import get_logger
from .mask_utils import Region, build_hole
from .pixel_buffer import PixelBuffer

logger = get_logger(__name__)


class HealingProvider(Protocol):
    """Remote content-aware fill.

    Must return a buffer of the same size as ``image`` or raise a
    ``HealingProviderError`` (ProviderUnavailable, ProviderRejected,
    HealingTimeout).
    """

    def heal(self, image: PixelBuffer, region: Region) -> PixelBuffer:
        ...


class HealState(Enum):
    IDLE = 'idle'
    PREPARING = 'preparing'
    REMOTE = 'remote'
    LOCAL = 'local'
    DONE = 'done'
    FAILED = 'failed'


class HealingOrchestrator:
    def __init__(self, config: Optional[HealingProviderConfig] = None,
                 provider: Optional[HealingProvider] = None,
                 local_healer: Optional[LocalDiffusionHealer] = None):
        if provider is None and config is not None and config.is_configured:
            from .remote_provider import InpaintingProvider
            provider = InpaintingProvider(config)
        self.provider = provider
        self.local_healer = local_healer or LocalDiffusionHealer()
        self.state = HealState.IDLE
        self.last_error = None

    @property
    def uses_remote(self) -> bool:
        return self.provider is not None

    def _set_state(self, state):
        logger.info(f'Healing: {self.state.value} -> {state.value}')
        self.state = state

    def heal(self, image: PixelBuffer, strokes, rect, cancel_event: Optional[threading.Event] = None) -> PixelBuffer:
        """Heal the painted region of ``image`` and return the new buffer.

        ``image`` itself is never modified. Raises EmptyRegion, InvalidMask,
        HealingProviderError subclasses, or HealingCancelled when
        ``cancel_event`` is set before the result is handed back. Whatever
        is raised, the invocation ends in FAILED with ``last_error`` set.
        """
        self.last_error = None
        self._set_state(HealState.PREPARING)
        try:
            hole = build_hole(strokes, rect, image.width, image.height)
            self._check_cancel(cancel_event)
            if self.provider is not None:
                self._set_state(HealState.REMOTE)
                try:
                    healed = self.provider.heal(image.copy(), hole.region)
                except HealingProviderError:
                    raise
                except Exception as exc:
                    # a provider that breaks its contract is reported like a bad reply
                    raise ProviderRejected('bad_response', f'{type(exc).__name__}: {exc}') from exc
                if healed.shape != image.shape:
                    raise ProviderRejected('size_mismatch', f'provider returned {healed.shape}, expected {image.shape}')
            else:
                logger.warning('No healing provider configured; using local diffusion fill')
                self._set_state(HealState.LOCAL)
                healed = self.local_healer.heal(image, hole.mask)
            self._check_cancel(cancel_event)
        except Exception as e:
            self.last_error = e
            logger.error(f'Healing failed: {type(e).__name__}: {e}')
            self._set_state(HealState.FAILED)
            raise
        self._set_state(HealState.DONE)
        return healed

    @staticmethod
    def _check_cancel(cancel_event):
        if cancel_event is not None and cancel_event.is_set():
            raise HealingCancelled('healing cancelled')
