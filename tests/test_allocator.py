import math
import unittest

import numpy as np

from storage_sim.allocator import AllocationError, optimize


class TestAllocator(unittest.TestCase):
    def test_single_container_under_max(self):
        out = optimize(80, 50)
        self.assertEqual(out.total, 96)
        self.assertEqual([c.size for c in out.containers], [96])
        self.assertEqual([c.used for c in out.containers], [80])
        self.assertEqual(out.containers[0].id, 1)

    def test_overflow_splits_into_max_sized_containers(self):
        out = optimize(150, 50)
        self.assertEqual(out.total, 180)
        self.assertEqual([c.size for c in out.containers], [100, 80])
        self.assertEqual([c.used for c in out.containers], [100, 50])
        self.assertEqual([c.id for c in out.containers], [1, 2])

    def test_idle_returns_one_base_container(self):
        for base in (10, 37, 50, 100):
            out = optimize(0, base)
            self.assertEqual(len(out.containers), 1)
            self.assertEqual(out.containers[0].size, base)
            self.assertEqual(out.containers[0].used, 0)
            self.assertEqual(out.total, base)

    def test_base_unit_size_only_matters_when_idle(self):
        self.assertEqual(optimize(80, 10).to_dict(), optimize(80, 100).to_dict())

    def test_packing_invariants_hold_over_range(self):
        for used in range(0, 700, 7):
            for base in (10, 55, 100):
                out = optimize(used, base)
                self.assertEqual(sum(c.size for c in out.containers), out.total)
                self.assertEqual(out.used, used)
                for c in out.containers:
                    self.assertLessEqual(c.size, 100)
                    self.assertGreaterEqual(c.size, 1)
                    self.assertLessEqual(c.used, c.size)
                if used > 0:
                    required = math.ceil(used * 1.2)
                    self.assertGreaterEqual(out.total, required)
                    self.assertLess(out.total - required, 100)
                    self.assertEqual(len(out.containers), math.ceil(required / 100))

    def test_usage_fills_containers_in_order(self):
        out = optimize(250, 50)
        # required 300 -> three full containers, last one partly used
        self.assertEqual([c.used for c in out.containers], [100, 100, 50])

    def test_custom_max_and_buffer(self):
        out = optimize(10, 50, max_container_size=5, buffer_percent=0.0)
        self.assertEqual([c.size for c in out.containers], [5, 5])
        self.assertEqual([c.used for c in out.containers], [5, 5])

    def test_numpy_integer_inputs(self):
        out = optimize(np.int64(80), np.int64(50))
        self.assertEqual(out.total, 96)
        self.assertEqual(out.containers[0].used, 80)

    def test_invalid_inputs_raise(self):
        with self.assertRaises(AllocationError):
            optimize(-1, 50)
        with self.assertRaises(AllocationError):
            optimize(10, 5)
        with self.assertRaises(AllocationError):
            optimize(10, 101)
        with self.assertRaises(AllocationError):
            optimize(1.5, 50)
        with self.assertRaises(AllocationError):
            optimize(10, 50, max_container_size=0)


if __name__ == "__main__":
    unittest.main()
