import math
import unittest

from pitch_recall.pitch_math import (
    analyze_pitch,
    cents_from_nearest_target,
    get_note_name,
    hz_to_note_number,
    label_to_pitch_class,
    matches_pitch_class,
    median,
    nearest_target_note_number,
    note_number_to_hz,
    pitch_class,
    pitch_class_to_label,
    validate_pitch_class,
)


class TestNoteNumbers(unittest.TestCase):
    def test_a4_is_note_69(self):
        self.assertAlmostEqual(hz_to_note_number(440.0), 69.0, places=9)
        self.assertAlmostEqual(note_number_to_hz(69), 440.0, places=9)

    def test_round_trip(self):
        for freq in (55.0, 123.4, 261.63, 440.0, 987.77):
            with self.subTest(freq=freq):
                self.assertAlmostEqual(note_number_to_hz(hz_to_note_number(freq)), freq, places=6)

    def test_octaves_are_twelve_semitones(self):
        self.assertAlmostEqual(hz_to_note_number(220.0), 57.0, places=9)
        self.assertAlmostEqual(hz_to_note_number(880.0), 81.0, places=9)

    def test_rejects_invalid_frequencies(self):
        for bad in (0.0, -440.0, float("nan"), float("inf")):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    hz_to_note_number(bad)

    def test_analyze_pitch(self):
        stats = analyze_pitch(446.0)
        self.assertEqual(stats.rounded_note_number, 69)
        self.assertEqual(stats.pitch_class, 9)
        self.assertGreater(stats.cents_from_rounded, 20)
        self.assertLess(stats.cents_from_rounded, 25)


class TestPitchClasses(unittest.TestCase):
    def test_pitch_class(self):
        self.assertEqual(pitch_class(60), 0)
        self.assertEqual(pitch_class(69), 9)
        self.assertEqual(pitch_class(69.3), 9)
        self.assertEqual(pitch_class(68.8), 9)

    def test_negative_note_numbers(self):
        self.assertEqual(pitch_class(-1), 11)
        self.assertEqual(pitch_class(-12), 0)
        self.assertEqual(pitch_class(-13), 11)

    def test_matching_is_periodic(self):
        for pc in range(12):
            for octave in range(-3, 4):
                with self.subTest(pc=pc, octave=octave):
                    self.assertTrue(matches_pitch_class(pc + 12 * octave, pc))
        self.assertFalse(matches_pitch_class(4, 5))

    def test_validate_pitch_class(self):
        self.assertEqual(validate_pitch_class(3), 3)
        self.assertEqual(validate_pitch_class(3.0), 3)
        for bad in (-1, 12, 3.5, True):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    validate_pitch_class(bad)

    def test_labels(self):
        self.assertEqual(pitch_class_to_label(1), "C#/Db")
        self.assertEqual(pitch_class_to_label(-3), "A")
        self.assertEqual(label_to_pitch_class("A"), 9)
        self.assertEqual(label_to_pitch_class("a"), 9)
        self.assertEqual(label_to_pitch_class("Bb"), 10)
        self.assertEqual(label_to_pitch_class("C#"), 1)
        self.assertEqual(label_to_pitch_class("C#/Db"), 1)
        with self.assertRaises(ValueError):
            label_to_pitch_class("H")


class TestCentsFromTarget(unittest.TestCase):
    def test_slightly_sharp(self):
        self.assertAlmostEqual(cents_from_nearest_target(57.1, 9), 10.0, places=6)

    def test_slightly_flat(self):
        self.assertAlmostEqual(cents_from_nearest_target(68.7, 9), -30.0, places=6)

    def test_octave_independent(self):
        for note in (45.2, 57.2, 69.2, 81.2):
            with self.subTest(note=note):
                self.assertAlmostEqual(cents_from_nearest_target(note, 9), 20.0, places=6)

    def test_nearest_octave_wraps(self):
        # D4 against A: A3 (a fourth below) is nearer than A4
        self.assertEqual(nearest_target_note_number(62, 9), 57)
        self.assertAlmostEqual(cents_from_nearest_target(62.0, 9), 500.0, places=6)
        self.assertEqual(nearest_target_note_number(64, 9), 69)
        self.assertAlmostEqual(cents_from_nearest_target(64.0, 9), -500.0, places=6)

    def test_stays_within_half_octave(self):
        for tenth in range(400, 900):
            note = tenth / 10.0
            for target in range(12):
                cents = cents_from_nearest_target(note, target)
                self.assertLessEqual(abs(cents), 650.0 + 1e-6)


class TestNoteNames(unittest.TestCase):
    def test_spn_names(self):
        self.assertEqual(get_note_name(440.0), "A4")
        self.assertEqual(get_note_name(261.63), "C4")
        self.assertEqual(get_note_name(277.18), "C#4")
        self.assertEqual(get_note_name(277.18, use_flats=True), "Db4")
        self.assertEqual(get_note_name(110.0), "A2")

    def test_invalid_frequency(self):
        self.assertEqual(get_note_name(0), "---")
        self.assertEqual(get_note_name(-5.0), "---")
        self.assertEqual(get_note_name(math.nan), "---")


class TestMedian(unittest.TestCase):
    def test_median(self):
        self.assertEqual(median([]), 0.0)
        self.assertEqual(median([3.0, 1.0, 2.0]), 2.0)
        self.assertEqual(median([1.0, 2.0, 3.0, 4.0]), 2.5)


if __name__ == "__main__":
    unittest.main()
