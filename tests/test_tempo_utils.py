import unittest

from errors import ConfigurationError
from tempo_utils import bpm_to_lag, lag_to_bpm, max_decimation, tempo_search_bounds


class TestTempoUtils(unittest.TestCase):
    def test_max_decimation(self):
        self.assertEqual(max_decimation(1), 1)
        self.assertEqual(max_decimation(4), 8)
        with self.assertRaises(ConfigurationError):
            max_decimation(0)

    def test_bounds_cd_quality(self):
        # floor(60/220 * 44100/8), floor(60/40 * 44100/8)
        bounds = tempo_search_bounds(44100, 4, 40.0, 220.0)
        self.assertEqual(bounds.min_index, 1503)
        self.assertEqual(bounds.max_index, 8268)
        self.assertEqual(bounds.max_decimation, 8)

    def test_bounds_low_rate(self):
        bounds = tempo_search_bounds(441, 4, 40.0, 220.0)
        self.assertEqual((bounds.min_index, bounds.max_index), (15, 82))

    def test_invalid_configuration(self):
        with self.assertRaises(ConfigurationError):
            tempo_search_bounds(0, 4, 40.0, 220.0)
        with self.assertRaises(ConfigurationError):
            tempo_search_bounds(-8000, 4, 40.0, 220.0)
        with self.assertRaises(ConfigurationError):
            tempo_search_bounds(44100, 4, 220.0, 40.0)
        with self.assertRaises(ConfigurationError):
            tempo_search_bounds(44100, 4, 0.0, 220.0)

    def test_collapsed_range(self):
        # 40 Hz, 8x decimation: both bounds floor to 0..7, min clamped to 1
        with self.assertRaises(ConfigurationError):
            tempo_search_bounds(40, 4, 219.0, 220.0)

    def test_lag_conversions(self):
        self.assertAlmostEqual(lag_to_bpm(2756.25, 44100, 8), 120.0)
        self.assertAlmostEqual(bpm_to_lag(120.0, 44100, 8), 2756.25)
        with self.assertRaises(ValueError):
            lag_to_bpm(0, 44100, 8)


if __name__ == "__main__":
    unittest.main()
