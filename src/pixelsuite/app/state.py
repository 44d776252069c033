from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional, TYPE_CHECKING

from pixelsuite.core.compositor import composite_on_opaque_background
from pixelsuite.core.errors import ConfigError, SessionBusyError
from pixelsuite.core.imaging import decode_image, encode_png
from pixelsuite.core.models import FilterModel, SheetOptions
from pixelsuite.remote.actions import EditAction
from pixelsuite.utils.logging import logger

if TYPE_CHECKING:  # avoid importing Pillow at module import time
    from PIL import Image
    from pixelsuite.remote.editors import ImageEditor


class HistoryStack:
    """
    LIFO stack of whole-image snapshots for undo.

    limit=0 keeps every snapshot; a positive limit drops the oldest once exceeded.
    """

    def __init__(self, limit: int = 0) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self.limit = limit
        self._items: List["Image.Image"] = []

    def push(self, snapshot: "Image.Image") -> None:
        self._items.append(snapshot)
        if self.limit and len(self._items) > self.limit:
            del self._items[0 : len(self._items) - self.limit]

    def pop(self) -> Optional["Image.Image"]:
        return self._items.pop() if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


_image_ids = itertools.count(1)


@dataclass(frozen=True)
class EditRequest:
    """A remote edit dispatched by `EditSession.begin_remote_edit`."""
    action: EditAction
    instruction: str
    image_bytes: Optional[bytes]


@dataclass
class EditSession:
    """
    Mutable state for a single editing session.

    The GUI and CLI read/write this state; rendering itself lives in pixelsuite.core and is
    pure. `image_id` changes whenever the current image does, so preview requests can tell
    images apart without hashing pixels.
    """
    # Current image (RGBA) and its identity
    image: Optional["Image.Image"] = None
    image_id: int = 0

    # User params
    filters: FilterModel = field(default_factory=FilterModel)
    sheet: SheetOptions = field(default_factory=SheetOptions)
    passport_mode: bool = False

    # Undo + remote edit state
    history: HistoryStack = field(default_factory=HistoryStack)
    busy: bool = False

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def can_undo(self) -> bool:
        return bool(self.history)

    def _require_idle(self, what: str) -> None:
        if self.busy:
            raise SessionBusyError(f"Cannot {what} while an AI edit is running.")

    def _set_image(self, image: "Image.Image") -> None:
        self.image = image
        self.image_id = next(_image_ids)

    # ---------- Image lifecycle ----------

    def load_image(self, source: Any) -> None:
        """Install a newly uploaded image; filters and passport mode return to defaults."""
        self._require_idle("load an image")
        img = decode_image(source)
        self._set_image(img)
        self.filters = FilterModel()
        self.passport_mode = False
        logger.info("Loaded image %dx%d", img.width, img.height)

    def reset(self) -> None:
        """Clear all session state (used by a Reset button)."""
        self._require_idle("reset")
        self.image = None
        self.image_id = 0
        self.filters = FilterModel()
        self.sheet = SheetOptions()
        self.passport_mode = False
        self.history.clear()

    # ---------- Filters / sheet options ----------

    def set_filter(self, name: str, value: Any) -> FilterModel:
        self.filters = self.filters.with_value(name, value)
        return self.filters

    def reset_filters(self) -> None:
        self.filters = FilterModel()

    def update_sheet(self, **changes: Any) -> SheetOptions:
        self.sheet = replace(self.sheet, **changes)
        return self.sheet

    # ---------- History ----------

    def push_history(self) -> None:
        if self.image is not None:
            self.history.push(self.image)

    def undo(self) -> bool:
        """
        Restore the previous snapshot.

        With nothing to undo, the filters are reset instead. Returns True if an image was restored.
        """
        self._require_idle("undo")
        previous = self.history.pop()
        if previous is None:
            self.reset_filters()
            return False
        self._set_image(previous)
        return True

    # ---------- Remote edits ----------

    def begin_remote_edit(self, action: EditAction, instruction: Optional[str] = None) -> EditRequest:
        """
        Validate and dispatch-prepare a remote edit on the caller's thread.

        The history snapshot is pushed here, before anything is sent, and the session is
        marked busy until `finish_remote_edit` or `fail_remote_edit` is called.
        """
        self._require_idle("start another AI edit")
        if action.requires_image and self.image is None:
            raise ConfigError(f"{action.label} needs an image; upload a photo first.")

        prompt = action.build_instruction(instruction)
        image_bytes = encode_png(self.image) if self.image is not None else None

        self.push_history()
        self.busy = True
        logger.info("Starting AI edit: %s", action.label)
        return EditRequest(action=action, instruction=prompt, image_bytes=image_bytes)

    def finish_remote_edit(self, request: EditRequest, result: bytes) -> None:
        try:
            img = decode_image(result)
            if request.action.flatten_result:
                img = composite_on_opaque_background(img)
        finally:
            self.busy = False
        self._set_image(img)
        logger.info("AI edit finished: %s (%dx%d)", request.action.label, img.width, img.height)

    def fail_remote_edit(self, request: EditRequest, error: Optional[BaseException] = None) -> None:
        self.busy = False
        logger.warning("AI edit failed: %s: %s", request.action.label, error)

    def apply_remote_edit(
        self,
        editor: "ImageEditor",
        action: EditAction,
        instruction: Optional[str] = None,
    ) -> None:
        """Run begin/edit/finish synchronously. On failure the image is left untouched."""
        request = self.begin_remote_edit(action, instruction)
        try:
            result = editor.edit(request.image_bytes, request.instruction)
        except Exception as e:
            self.fail_remote_edit(request, e)
            raise
        self.finish_remote_edit(request, result)
