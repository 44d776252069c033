"""Background preview regeneration where only the most recently requested result is shown."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

from pixelsuite.core.filters import RenderMode, render
from pixelsuite.core.layout import layout_sheet_with_options
from pixelsuite.core.models import FilterModel, SheetOptions
from pixelsuite.utils.logging import logger

T = TypeVar("T")

Spawn = Callable[[Callable[[], None]], Any]
Dispatch = Callable[[Callable[[], None]], None]


def _call_now(fn: Callable[[], None]) -> None:
    fn()


class PreviewScheduler(Generic[T]):
    """
    Run preview jobs in the background, delivering only the latest request's result.

    Each `request` gets a new job id. By default jobs run one at a time on a single
    worker thread owned by the scheduler; a queued job that has already been superseded
    is skipped without rendering. When a job finishes, its result is handed to *deliver*
    only if no newer job has been requested meanwhile. Running renders are never
    interrupted. *spawn* replaces the worker (tests pass a collecting fake) and *dispatch*
    moves completion back to the UI thread (e.g. ``lambda fn: root.after(0, fn)``).
    """

    def __init__(
        self,
        render_fn: Callable[..., T],
        deliver: Callable[[Optional[T], Optional[BaseException]], None],
        *,
        spawn: Optional[Spawn] = None,
        dispatch: Dispatch = _call_now,
    ) -> None:
        self._render_fn = render_fn
        self._deliver = deliver
        self._executor: Optional[ThreadPoolExecutor] = None
        if spawn is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pixelsuite-preview")
            spawn = self._executor.submit
        self._spawn = spawn
        self._dispatch = dispatch
        self._lock = threading.Lock()
        self._latest = 0
        self._last_key: Optional[Hashable] = None

    def _is_latest(self, job_id: int) -> bool:
        with self._lock:
            return job_id == self._latest

    def request(self, *args: Any) -> int:
        with self._lock:
            self._latest += 1
            job_id = self._latest

        def job() -> None:
            if not self._is_latest(job_id):
                logger.debug("Skipped superseded preview job %d", job_id)
                return
            result: Optional[T] = None
            err: Optional[BaseException] = None
            try:
                result = self._render_fn(*args)
            except Exception as e:
                err = e
            self._dispatch(lambda: self._finish(job_id, result, err))

        self._spawn(job)
        return job_id

    def request_if_changed(self, key: Hashable, *args: Any) -> Optional[int]:
        """Request a render only when *key* differs from the last requested key."""
        with self._lock:
            if key == self._last_key:
                return None
            self._last_key = key
        return self.request(*args)

    def invalidate(self) -> None:
        """Forget the last key and drop any in-flight results."""
        with self._lock:
            self._last_key = None
            self._latest += 1

    def shutdown(self) -> None:
        """Stop the owned worker; pending jobs are dropped, a running one is allowed to finish."""
        self.invalidate()
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    def _finish(self, job_id: int, result: Optional[T], err: Optional[BaseException]) -> None:
        with self._lock:
            latest = self._latest
        if job_id != latest:
            logger.debug("Dropped stale preview job %d (latest %d)", job_id, latest)
            return
        self._deliver(result, err)


@dataclass(frozen=True)
class PreviewKey:
    """Every input that changes the displayed preview."""
    image_id: int
    filters: FilterModel
    passport_mode: bool
    sheet: SheetOptions


def render_display(image: Any, filters: FilterModel, passport_mode: bool, sheet: SheetOptions, max_size: int = 1200):
    """
    Produce what the canvas should show.

    Passport mode shows the exact export sheet (same layout call as export/print);
    otherwise a fast Pillow preview of the filtered photo.
    """
    if passport_mode:
        return layout_sheet_with_options(image, filters, sheet).image
    return render(image, filters, RenderMode.PREVIEW, max_size=max_size)
