"""Error taxonomy shared by the editing and healing stages."""


class MockupError(Exception):
    """Base class for every error raised by mockup_editor."""


class DegenerateGeometry(MockupError, ValueError):
    """A container, display rect or image has a zero (or negative) extent."""


class DecodeFailed(MockupError):
    """An overlay could not be decoded within its time budget."""


class EmptyRegion(MockupError):
    """Healing was requested without any painted stroke.

    The all-false mask that was built is kept on ``mask`` so callers can
    still inspect it.
    """

    def __init__(self, message='No strokes to heal', mask=None):
        super().__init__(message)
        self.mask = mask


class InvalidMask(MockupError, ValueError):
    """Hole mask and image dimensions disagree."""


class HealingProviderError(MockupError):
    """Failure reported by (or while talking to) a remote healing provider."""


class ProviderUnavailable(HealingProviderError):
    pass


class ProviderRejected(HealingProviderError):
    def __init__(self, code, message):
        super().__init__(f'{code}: {message}')
        self.code = code
        self.message = message


class HealingTimeout(HealingProviderError, TimeoutError):
    pass


class HealingCancelled(MockupError):
    """The healing invocation was cancelled before its result was applied."""
