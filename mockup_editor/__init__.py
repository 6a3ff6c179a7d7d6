"""mockup_editor package: mark placement, background keying and region healing."""

from .coords import DisplayRect, fit_rect, to_display, to_native
from .compositor import Mark, composite, export_image
from .config import HealingProviderConfig
from .diffusion import LocalDiffusionHealer, diffuse_fill
from .errors import (DecodeFailed, DegenerateGeometry, EmptyRegion, HealingCancelled,
                     HealingProviderError, HealingTimeout, InvalidMask, MockupError,
                     ProviderRejected, ProviderUnavailable)
from .healing import HealingOrchestrator, HealingProvider, HealState
from .keying import key_background, key_overlay, key_overlays
from .mask_utils import DrawingSession, Region, Stroke, build_hole
from .pixel_buffer import ImageDecoder, PixelBuffer, decode_bytes, encode_image
from .session import EditorSession

__all__ = [
    'DisplayRect', 'fit_rect', 'to_display', 'to_native',
    'Mark', 'composite', 'export_image',
    'HealingProviderConfig',
    'LocalDiffusionHealer', 'diffuse_fill',
    'DecodeFailed', 'DegenerateGeometry', 'EmptyRegion', 'HealingCancelled',
    'HealingProviderError', 'HealingTimeout', 'InvalidMask', 'MockupError',
    'ProviderRejected', 'ProviderUnavailable',
    'HealingOrchestrator', 'HealingProvider', 'HealState',
    'key_background', 'key_overlay', 'key_overlays',
    'DrawingSession', 'Region', 'Stroke', 'build_hole',
    'ImageDecoder', 'PixelBuffer', 'decode_bytes', 'encode_image',
    'EditorSession',
]
