import unittest

import numpy as np

from storage_sim.state_codec import (
    UsageValidationError,
    clamp_base_unit_size,
    encode_state,
    parse_amount,
    state_key,
)


class TestStateCodec(unittest.TestCase):
    def test_encode_state_floors_percentages(self):
        self.assertEqual(encode_state(80, 96), (83, 16))
        self.assertEqual(encode_state(0, 50), (0, 100))
        self.assertEqual(encode_state(150, 180), (83, 16))

    def test_encode_state_uses_float_division(self):
        # 29/100*100 is 28.999999999999996 in floating point
        self.assertEqual(encode_state(29, 100), (28, 71))

    def test_nearby_pairs_share_a_bucket(self):
        self.assertEqual(state_key(encode_state(80, 96)), state_key(encode_state(150, 180)))
        self.assertEqual(state_key((83, 16)), "u83_w16")

    def test_encode_state_rejects_zero_total(self):
        with self.assertRaises(UsageValidationError):
            encode_state(0, 0)

    def test_parse_amount_accepts_form_like_values(self):
        self.assertEqual(parse_amount(30), 30)
        self.assertEqual(parse_amount("30"), 30)
        self.assertEqual(parse_amount(" 12GB"), 12)
        self.assertEqual(parse_amount(7.9), 7)

    def test_parse_amount_rejects_invalid(self):
        for bad in (0, -3, "abc", "", None, True, "-4", 0.4, float("nan"), [1]):
            with self.assertRaises(UsageValidationError, msg=f"value={bad!r}"):
                parse_amount(bad)

    def test_clamp_base_unit_size(self):
        self.assertEqual(clamp_base_unit_size(70), 70)
        self.assertEqual(clamp_base_unit_size(5), 10)
        self.assertEqual(clamp_base_unit_size(500), 100)
        self.assertEqual(clamp_base_unit_size("-5"), 10)
        self.assertEqual(clamp_base_unit_size("abc"), 50)
        self.assertEqual(clamp_base_unit_size(0), 50)
        self.assertEqual(clamp_base_unit_size(None), 50)

    def test_numpy_scalars_are_numeric(self):
        self.assertEqual(parse_amount(np.int64(30)), 30)
        self.assertEqual(parse_amount(np.float32(7.9)), 7)
        self.assertEqual(clamp_base_unit_size(np.int64(500)), 100)
        self.assertEqual(clamp_base_unit_size(np.int32(70)), 70)


if __name__ == "__main__":
    unittest.main()
