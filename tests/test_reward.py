import unittest

from storage_rl.reward import compute_step_reward, utilization_band_reward


class TestReward(unittest.TestCase):
    def test_band_brackets(self):
        self.assertEqual(utilization_band_reward(0.6), 10.0)
        self.assertEqual(utilization_band_reward(0.9), 10.0)
        self.assertEqual(utilization_band_reward(0.29), -15.0)
        self.assertEqual(utilization_band_reward(0.96), -10.0)

    def test_gaps_earn_nothing(self):
        for u in (0.3, 0.45, 0.59, 0.91, 0.95):
            self.assertEqual(utilization_band_reward(u), 0.0, msg=f"u={u}")

    def test_steady_in_band(self):
        # 80/96: band bonus, waste 16/96
        r = compute_step_reward(80, 96, 96)
        self.assertAlmostEqual(r, 10.0 - (16 / 96) * 5)

    def test_growth_penalty(self):
        r = compute_step_reward(80, 96, 50)
        self.assertAlmostEqual(r, 10.0 - (16 / 96) * 5 - 2.0)

    def test_shrink_bonus_requires_utilization(self):
        r = compute_step_reward(80, 96, 120)
        self.assertAlmostEqual(r, 10.0 - (16 / 96) * 5 + 5.0)
        # idle shrink: utilization 0, no bonus, underuse penalty and full waste
        r = compute_step_reward(0, 50, 96)
        self.assertAlmostEqual(r, -15.0 - 5.0)

    def test_idle_state(self):
        self.assertAlmostEqual(compute_step_reward(0, 50, 50), -20.0)

    def test_zero_total_raises(self):
        with self.assertRaises(ValueError):
            compute_step_reward(0, 0, 50)


if __name__ == "__main__":
    unittest.main()
