import unittest

import numpy as np

from envelope import add, combine_envelopes, decimate, extract_envelope, normalize, rectify
from errors import ConfigurationError, InsufficientDataError


class TestDecimate(unittest.TestCase):
    def test_length_is_floor_of_len_over_pace(self):
        for length in (0, 1, 7, 8, 9, 63, 64, 65):
            seq = np.arange(length, dtype=float)
            for pace in (1, 2, 3, 8):
                self.assertEqual(len(decimate(seq, pace)), length // pace, (length, pace))

    def test_keeps_every_pace_th_element(self):
        seq = np.arange(10, dtype=float)
        np.testing.assert_array_equal(decimate(seq, 3), [0.0, 3.0, 6.0])
        np.testing.assert_array_equal(decimate(seq, 1), seq)

    def test_invalid_pace(self):
        with self.assertRaises(ConfigurationError):
            decimate([1.0, 2.0], 0)

    def test_does_not_alias_input(self):
        seq = np.arange(8, dtype=float)
        out = decimate(seq, 1)
        out[0] = 99.0
        self.assertEqual(seq[0], 0.0)


class TestRectifyNormalize(unittest.TestCase):
    def test_rectify_is_pure(self):
        seq = np.array([-1.0, 2.0, -3.0])
        np.testing.assert_array_equal(rectify(seq), [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(seq, [-1.0, 2.0, -3.0])

    def test_normalize_has_zero_mean(self):
        rng = np.random.default_rng(3)
        seq = rng.uniform(0.0, 5.0, size=1001)
        result = normalize(seq)
        self.assertAlmostEqual(float(np.mean(result)), 0.0, places=12)
        self.assertGreater(float(np.mean(seq)), 1.0)

    def test_normalize_empty(self):
        self.assertEqual(len(normalize(np.array([]))), 0)

    def test_extract_envelope_order(self):
        # decimate first, then rectify, then remove mean
        seq = np.array([-4.0, 100.0, 2.0, 100.0])
        np.testing.assert_allclose(extract_envelope(seq, 2), [1.0, -1.0])


class TestCombineEnvelopes(unittest.TestCase):
    def test_add_requires_equal_lengths(self):
        np.testing.assert_array_equal(add([1.0, 2.0], [3.0, 4.0]), [4.0, 6.0])
        with self.assertRaises(ValueError):
            add([1.0, 2.0], [1.0])

    def test_truncates_to_shortest(self):
        combined = combine_envelopes([
            np.array([1.0, 1.0, 1.0, 1.0]),
            np.array([2.0, 2.0, 2.0]),
            np.array([3.0, 3.0, 3.0, 3.0, 3.0]),
        ])
        np.testing.assert_array_equal(combined, [6.0, 6.0, 6.0])

    def test_inputs_untouched(self):
        first = np.array([1.0, 1.0])
        combine_envelopes([first, np.array([1.0, 1.0])])
        np.testing.assert_array_equal(first, [1.0, 1.0])

    def test_empty_inputs(self):
        with self.assertRaises(InsufficientDataError):
            combine_envelopes([])
        with self.assertRaises(InsufficientDataError):
            combine_envelopes([np.array([1.0]), np.array([])])


if __name__ == "__main__":
    unittest.main()
