"""Editing session: the single owner of the working image.

Holds the base image, the placed marks and the removal strokes, and
serialises every replacement of the working image behind one lock. Healing
can run synchronously or on a daemon worker thread; a cancelled or failed
run never touches the working image.
"""
import threading
from typing import Callable, Optional

from .coords import fit_rect
from .defaults import BRUSH_DEFAULT, BRUSH_MAX, BRUSH_MIN, BRUSH_STEP, EXPORT_FORMAT, EXPORT_QUALITY
from .compositor import Mark, export_image
from .errors import HealingCancelled
from .healing import HealingOrchestrator
from .keying import key_background, key_overlays
from .log_utils import get_logger
from .mask_utils import DrawingSession
from .pixel_buffer import ImageDecoder, PixelBuffer

logger = get_logger(__name__)


class EditorSession:
    def __init__(self, base: PixelBuffer, container_size=(800, 600),
                 orchestrator: Optional[HealingOrchestrator] = None,
                 decoder: Optional[ImageDecoder] = None, brush_size=BRUSH_DEFAULT):
        self._image = base
        self._lock = threading.Lock()
        self.orchestrator = orchestrator or HealingOrchestrator()
        self._decoder = decoder
        self.drawing = DrawingSession()
        self.marks = []
        self._mark_counter = 0
        self.brush_size = self._clamp_brush(brush_size)
        self.container_size = tuple(container_size)
        self.display_rect = fit_rect(self.container_size[0], self.container_size[1], base.width, base.height)

        # async healing state
        self._heal_running = False
        self._cancel_event = None

    # ---- working image ----
    @property
    def working_image(self) -> PixelBuffer:
        return self._image

    def replace_image(self, buf: PixelBuffer):
        """Swap in a new working image (exclusive section)."""
        with self._lock:
            self._image = buf
            self.display_rect = fit_rect(self.container_size[0], self.container_size[1], buf.width, buf.height)
        logger.info(f'Working image replaced ({buf.width}x{buf.height})')

    def resize_canvas(self, width, height):
        with self._lock:
            self.container_size = (width, height)
            self.display_rect = fit_rect(width, height, self._image.width, self._image.height)
            return self.display_rect

    # ---- marks ----
    @property
    def decoder(self) -> ImageDecoder:
        if self._decoder is None:
            self._decoder = ImageDecoder()
        return self._decoder

    def add_overlays(self, sources):
        """Key and place overlays; sources that cannot be decoded are skipped.

        Already decoded PixelBuffers are keyed directly. Returns the new marks.
        """
        pending = [s for s in sources if not isinstance(s, PixelBuffer)]
        decoded = iter(key_overlays(pending, self.decoder) if pending else [])
        added = []
        for source in sources:
            buf = key_background(source) if isinstance(source, PixelBuffer) else next(decoded)
            if not isinstance(buf, PixelBuffer):
                logger.warning('Overlay skipped: could not be decoded')
                continue
            mark = Mark.place(f'mark-{self._mark_counter}', buf, index=len(self.marks))
            self._mark_counter += 1
            self.marks.append(mark)
            added.append(mark)
        return added

    def get_mark(self, mark_id) -> Mark:
        for mark in self.marks:
            if mark.id == mark_id:
                return mark
        raise KeyError(mark_id)

    def move_mark(self, mark_id, x, y):
        self.get_mark(mark_id).move_to(x, y)

    def transform_mark(self, mark_id, x, y, scale_x=1.0, scale_y=1.0, rotation=None):
        self.get_mark(mark_id).apply_transform(x, y, scale_x, scale_y, rotation)

    def delete_mark(self, mark_id):
        mark = self.get_mark(mark_id)
        self.marks.remove(mark)

    # ---- brush / strokes ----
    @staticmethod
    def _clamp_brush(size):
        return max(BRUSH_MIN, min(BRUSH_MAX, int(size)))

    def set_brush_size(self, size):
        self.brush_size = self._clamp_brush(size)
        return self.brush_size

    def grow_brush(self):
        return self.set_brush_size(self.brush_size + BRUSH_STEP)

    def shrink_brush(self):
        return self.set_brush_size(self.brush_size - BRUSH_STEP)

    def pointer_down(self, x, y):
        self.drawing.pointer_down(x, y, self.brush_size)

    def pointer_move(self, x, y):
        self.drawing.pointer_move(x, y)

    def pointer_up(self):
        return self.drawing.pointer_up()

    @property
    def strokes(self):
        return self.drawing.strokes

    def clear_strokes(self):
        self.drawing.clear()

    # ---- healing ----
    def _commit(self, snapshot, strokes, healed, cancel_event=None):
        with self._lock:
            if cancel_event is not None and cancel_event.is_set():
                raise HealingCancelled('healing cancelled')
            if self._image is not snapshot:
                raise HealingCancelled('working image changed while healing')
            self._image = healed
            self.drawing.discard(strokes)
        logger.info('Healed image committed')

    def heal(self) -> PixelBuffer:
        """Heal the painted strokes now; returns the new working image."""
        snapshot, strokes, rect = self._image, self.drawing.strokes, self.display_rect
        healed = self.orchestrator.heal(snapshot, strokes, rect)
        self._commit(snapshot, strokes, healed)
        return healed

    @property
    def is_healing(self) -> bool:
        return self._heal_running

    def heal_async(self, callback: Optional[Callable] = None):
        """Heal on a worker thread; ``callback(result, error)`` runs on that thread.

        Returns the thread, or None when a heal is already running.
        """
        with self._lock:
            if self._heal_running:
                return None
            self._heal_running = True
            self._cancel_event = threading.Event()
            snapshot, strokes, rect = self._image, self.drawing.strokes, self.display_rect
        t = threading.Thread(target=self._heal_worker,
                             args=(snapshot, strokes, rect, self._cancel_event, callback), daemon=True)
        t.start()
        return t

    def cancel_healing(self):
        if self._cancel_event is not None:
            self._cancel_event.set()

    def _heal_worker(self, snapshot, strokes, rect, cancel_event, callback):
        result, error = None, None
        try:
            healed = self.orchestrator.heal(snapshot, strokes, rect, cancel_event=cancel_event)
            self._commit(snapshot, strokes, healed, cancel_event)
            result = healed
        except Exception as e:
            error = e
            logger.error(f'Background healing failed: {type(e).__name__}: {e}')
        finally:
            self._heal_running = False
        if callback is not None:
            callback(result, error)

    # ---- export ----
    def export(self, fmt=EXPORT_FORMAT, quality=EXPORT_QUALITY, path=None) -> bytes:
        return export_image(self._image, self.marks, self.display_rect, fmt=fmt, quality=quality, path=path)
