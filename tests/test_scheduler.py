import threading
import time
import unittest

from storage_sim.scheduler import ManualScheduler, Scheduler, ThreadingScheduler, TrainingLoop


class TestSchedulerInterface(unittest.TestCase):
    def test_base_scheduler_is_abstract(self):
        with self.assertRaises(TypeError):
            Scheduler()

    def test_subclass_must_implement_call_later(self):
        class Incomplete(Scheduler):
            pass

        with self.assertRaises(TypeError):
            Incomplete()


class TestManualScheduler(unittest.TestCase):
    def test_runs_only_due_callbacks_in_order(self):
        sched = ManualScheduler()
        calls = []
        sched.call_later(0.2, lambda: calls.append("b"))
        sched.call_later(0.1, lambda: calls.append("a"))
        self.assertEqual(sched.advance(0.15), 1)
        self.assertEqual(calls, ["a"])
        self.assertEqual(sched.pending, 1)
        sched.advance(0.1)
        self.assertEqual(calls, ["a", "b"])

    def test_cancelled_call_never_runs(self):
        sched = ManualScheduler()
        calls = []
        handle = sched.call_later(0.1, lambda: calls.append(1))
        handle.cancel()
        self.assertEqual(sched.pending, 0)
        sched.advance(1.0)
        self.assertEqual(calls, [])


class TestTrainingLoop(unittest.TestCase):
    def test_ticks_once_per_interval(self):
        sched = ManualScheduler()
        ticks = []
        loop = TrainingLoop(tick=lambda: ticks.append(sched.now), scheduler=sched, interval=0.1)
        self.assertTrue(loop.start())
        self.assertFalse(loop.start())
        sched.advance(0.55)
        self.assertEqual(len(ticks), 5)
        self.assertEqual(loop.ticks, 5)

    def test_stop_prevents_next_tick(self):
        sched = ManualScheduler()
        ticks = []
        loop = TrainingLoop(tick=lambda: ticks.append(1), scheduler=sched, interval=0.1)
        loop.start()
        sched.advance(0.25)
        self.assertTrue(loop.stop())
        self.assertFalse(loop.stop())
        self.assertEqual(sched.pending, 0)
        sched.advance(1.0)
        self.assertEqual(len(ticks), 2)
        self.assertFalse(loop.running)

    def test_stop_from_inside_tick(self):
        sched = ManualScheduler()
        loop = None
        ticks = []

        def tick():
            ticks.append(1)
            if len(ticks) == 3:
                loop.stop()

        loop = TrainingLoop(tick=tick, scheduler=sched, interval=0.1)
        loop.start()
        sched.advance(1.0)
        self.assertEqual(len(ticks), 3)
        self.assertEqual(sched.pending, 0)

    def test_restart_after_stop(self):
        sched = ManualScheduler()
        ticks = []
        loop = TrainingLoop(tick=lambda: ticks.append(1), scheduler=sched, interval=0.1)
        loop.start()
        loop.stop()
        loop.start()
        sched.advance(0.1)
        self.assertEqual(len(ticks), 1)

    def test_stale_callback_is_discarded(self):
        sched = ManualScheduler()
        ticks = []
        loop = TrainingLoop(tick=lambda: ticks.append(1), scheduler=sched, interval=0.1)
        loop.start()
        stale = loop._pending
        loop.stop()
        loop.start()
        stale.cancelled = False  # simulate a timer that already fired
        stale.run()
        self.assertEqual(ticks, [])

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            TrainingLoop(tick=lambda: None, scheduler=ManualScheduler(), interval=0)

    def test_threading_scheduler_runs_and_stops(self):
        fired = threading.Event()
        count = []

        def tick():
            count.append(1)
            fired.set()

        loop = TrainingLoop(tick=tick, scheduler=ThreadingScheduler(), interval=0.01)
        loop.start()
        self.assertTrue(fired.wait(timeout=2.0))
        loop.stop()
        seen = len(count)
        time.sleep(0.05)
        self.assertEqual(len(count), seen)


if __name__ == "__main__":
    unittest.main()
