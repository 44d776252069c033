import threading
import time
import unittest

from PIL import Image

from tests._test_path import SRC  # noqa: F401

from pixelsuite.app.preview import PreviewKey, PreviewScheduler, render_display
from pixelsuite.core.models import FilterModel, SheetOptions


class ManualSpawn:
    """Collects jobs so tests decide when (and in which order) they complete."""

    def __init__(self):
        self.jobs = []

    def __call__(self, fn):
        self.jobs.append(fn)


class TestPreviewScheduler(unittest.TestCase):
    def setUp(self):
        self.spawn = ManualSpawn()
        self.delivered = []
        self.scheduler = PreviewScheduler(
            lambda value: value * 10,
            lambda result, err: self.delivered.append((result, err)),
            spawn=self.spawn,
        )

    def test_single_request_delivers(self):
        job_id = self.scheduler.request(1)
        self.assertEqual(job_id, 1)
        self.spawn.jobs[0]()
        self.assertEqual(self.delivered, [(10, None)])

    def test_only_latest_result_is_delivered(self):
        self.scheduler.request(1)
        self.scheduler.request(2)
        self.scheduler.request(3)

        # Newest finishes first, older ones straggle in afterwards.
        self.spawn.jobs[2]()
        self.spawn.jobs[0]()
        self.spawn.jobs[1]()

        self.assertEqual(self.delivered, [(30, None)])

    def test_stale_result_dropped_while_newer_in_flight(self):
        self.scheduler.request(1)
        self.scheduler.request(2)
        self.spawn.jobs[0]()
        self.assertEqual(self.delivered, [])
        self.spawn.jobs[1]()
        self.assertEqual(self.delivered, [(20, None)])

    def test_request_if_changed_skips_same_key(self):
        self.assertEqual(self.scheduler.request_if_changed("k1", 1), 1)
        self.assertIsNone(self.scheduler.request_if_changed("k1", 1))
        self.assertEqual(self.scheduler.request_if_changed("k2", 2), 2)
        self.assertEqual(len(self.spawn.jobs), 2)

    def test_invalidate_drops_in_flight_and_forgets_key(self):
        self.scheduler.request_if_changed("k", 1)
        self.scheduler.invalidate()
        self.spawn.jobs[0]()
        self.assertEqual(self.delivered, [])
        self.assertIsNotNone(self.scheduler.request_if_changed("k", 1))

    def test_render_errors_are_delivered(self):
        def broken(_value):
            raise ValueError("bad input")

        scheduler = PreviewScheduler(
            broken,
            lambda result, err: self.delivered.append((result, err)),
            spawn=self.spawn,
        )
        scheduler.request(1)
        self.spawn.jobs[0]()

        result, err = self.delivered[0]
        self.assertIsNone(result)
        self.assertIsInstance(err, ValueError)

    def test_dispatch_receives_completion(self):
        dispatched = []
        scheduler = PreviewScheduler(
            lambda v: v,
            lambda result, err: self.delivered.append((result, err)),
            spawn=self.spawn,
            dispatch=dispatched.append,
        )
        scheduler.request(7)
        self.spawn.jobs[0]()
        self.assertEqual(self.delivered, [])
        dispatched[0]()
        self.assertEqual(self.delivered, [(7, None)])

    def test_result_finished_after_newer_request_is_dropped(self):
        dispatched = []
        scheduler = PreviewScheduler(
            lambda v: v,
            lambda result, err: self.delivered.append((result, err)),
            spawn=self.spawn,
            dispatch=dispatched.append,
        )
        scheduler.request(1)
        self.spawn.jobs[0]()
        scheduler.request(2)
        dispatched[0]()
        self.assertEqual(self.delivered, [])


class TestPreviewWorker(unittest.TestCase):
    def test_renders_run_one_at_a_time(self):
        lock = threading.Lock()
        running = [0]
        peak = [0]
        rendered = []
        done = threading.Event()
        release = threading.Event()
        delivered = []

        def slow_render(value):
            release.wait(5)
            rendered.append(value)
            with lock:
                running[0] += 1
                peak[0] = max(peak[0], running[0])
            time.sleep(0.02)
            with lock:
                running[0] -= 1
            return value

        def deliver(result, err):
            delivered.append((result, err))
            done.set()

        scheduler = PreviewScheduler(slow_render, deliver)
        self.addCleanup(scheduler.shutdown)
        for i in range(20):
            scheduler.request(i)
        release.set()

        self.assertTrue(done.wait(10))
        self.assertEqual(peak[0], 1)
        self.assertEqual(delivered, [(19, None)])
        # Jobs superseded while queued never render.
        self.assertLessEqual(len(rendered), 2)
        self.assertEqual(rendered[-1], 19)

    def test_shutdown_drops_pending_results(self):
        spawn = ManualSpawn()
        delivered = []
        scheduler = PreviewScheduler(lambda v: v, lambda result, err: delivered.append(result), spawn=spawn)
        scheduler.request(1)
        scheduler.shutdown()
        spawn.jobs[0]()
        self.assertEqual(delivered, [])

    def test_default_worker_delivers(self):
        done = threading.Event()
        out = []

        def deliver(result, err):
            out.append((result, err))
            done.set()

        scheduler = PreviewScheduler(lambda v: v + 1, deliver)
        self.addCleanup(scheduler.shutdown)
        scheduler.request(1)
        self.assertTrue(done.wait(5))
        self.assertEqual(out, [(2, None)])


class TestRenderDisplay(unittest.TestCase):
    def setUp(self):
        self.image = Image.new("RGBA", (400, 300), (120, 60, 30, 255))

    def test_normal_mode_is_downscaled_preview(self):
        out = render_display(self.image, FilterModel(), False, SheetOptions(), max_size=200)
        self.assertEqual(out.size, (200, 150))

    def test_passport_mode_shows_the_sheet(self):
        out = render_display(self.image, FilterModel(), True, SheetOptions(photo_count=9))
        self.assertEqual(out.size, (1200, 1800))

    def test_preview_key_equality(self):
        a = PreviewKey(1, FilterModel(contrast=120), False, SheetOptions())
        b = PreviewKey(1, FilterModel(contrast=120), False, SheetOptions())
        c = PreviewKey(1, FilterModel(contrast=121), False, SheetOptions())
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, c)
