import math
import random
import unittest

import numpy as np

from pitch_recall.core.events import SessionEventType
from pitch_recall.core.interfaces import IPitchEstimator
from pitch_recall.detection.pitch_tracker import PitchTracker
from pitch_recall.detection.voice_range import VoiceMode, VoiceRange
from pitch_recall.notes import DEFAULT_NOTES
from pitch_recall.pitch_math import hz_to_note_number
from pitch_recall.pitch_session import PitchSession
from pitch_recall.pitch_types import PitchEstimate, SampleBlock

SAMPLE_RATE = 44100
A = 9


class ScriptedEstimator(IPitchEstimator):
    """Reports whatever frequency the test is currently 'singing'."""

    min_hz = 70.0
    max_hz = 900.0

    def __init__(self):
        self.current = PitchEstimate(frequency_hz=440.0, clarity=0.95)

    def estimate(self, samples, sample_rate):
        return self.current


LOUD = SampleBlock(samples=np.full(256, 0.5, dtype=np.float32), sample_rate=SAMPLE_RATE)
QUIET = SampleBlock(samples=np.zeros(256, dtype=np.float32), sample_rate=SAMPLE_RATE)


class SessionTestCase(unittest.TestCase):
    def setUp(self):
        self.estimator = ScriptedEstimator()
        self.tracker = PitchTracker(estimator=self.estimator, clock=lambda: 0.0)
        self.session = PitchSession(
            self.tracker,
            hold_seconds=1.0,
            clock=lambda: 0.0,
            rng=random.Random(7),
        )
        self.events = []
        for event_type in SessionEventType:
            self.session.events.on(
                event_type, lambda *args, _t=event_type: self.events.append((_t, args))
            )
        self.session.select_target(A)
        self.events.clear()

    def sing(self, frequency, start_ms, end_ms, step_ms=100, clarity=0.95):
        self.estimator.current = PitchEstimate(frequency_hz=frequency, clarity=clarity)
        updates = []
        t = start_ms
        while t <= end_ms:
            self.tracker.ingest(LOUD, t)
            updates.append(self.session.step(t))
            t += step_ms
        return updates

    def events_of(self, event_type):
        return [args for t, args in self.events if t is event_type]


class TestHolding(SessionTestCase):
    def test_holding_in_tune_succeeds_once(self):
        updates = self.sing(440.0, 0, 1000)

        self.assertEqual(updates[0].status_text, "Hold it... 1.0s")
        self.assertTrue(updates[0].in_tune)
        self.assertEqual(updates[5].status_text, "Hold it... 0.5s")
        self.assertAlmostEqual(updates[5].progress, 0.5)

        final = updates[-1]
        self.assertTrue(final.success)
        self.assertTrue(final.just_succeeded)
        self.assertEqual(final.status_text, "Success!")
        self.assertEqual(len(self.events_of(SessionEventType.SUCCESS)), 1)
        note, elapsed_ms = self.events_of(SessionEventType.SUCCESS)[0]
        self.assertEqual(note.pitch_class, A)
        self.assertEqual(elapsed_ms, 1000)

        later = self.sing(440.0, 1100, 1300)
        self.assertTrue(all(u.success for u in later))
        self.assertFalse(any(u.just_succeeded for u in later))
        self.assertTrue(all(u.status_text == "Success!" for u in later))
        self.assertEqual(len(self.events_of(SessionEventType.SUCCESS)), 1)

    def test_any_octave_counts(self):
        updates = self.sing(220.0, 0, 1000)
        self.assertTrue(updates[-1].just_succeeded)

    def test_silence_breaks_the_streak(self):
        self.sing(440.0, 0, 500)
        for t in (600, 700, 800):
            self.tracker.ingest(QUIET, t)
        update = self.session.step(800)
        self.assertEqual(update.status_text, "Too quiet")
        self.assertFalse(update.has_pitch)
        self.assertEqual(update.progress, 0.0)

        resumed = self.sing(440.0, 900, 1400)
        self.assertFalse(resumed[-1].success)
        self.assertAlmostEqual(resumed[-1].elapsed_seconds, 0.5)

    def test_out_of_tolerance_is_not_in_tune(self):
        self.session.cents_tolerance = 10
        sharp = 440.0 * 2 ** (23.0 / 1200)
        update = self.sing(sharp, 0, 0)[0]
        self.assertFalse(update.in_tune)
        self.assertEqual(update.status_text, "Listening...")
        self.assertAlmostEqual(update.line_offset_cents, 23.0, places=3)

        self.session.cents_tolerance = 35
        update = self.sing(sharp, 100, 100)[0]
        self.assertTrue(update.in_tune)


class TestStatusText(SessionTestCase):
    def test_too_quiet(self):
        self.tracker.ingest(QUIET, 0)
        update = self.session.step(0)
        self.assertEqual(update.status_text, "Too quiet")
        self.assertEqual(update.line_offset_cents, 0.0)
        self.assertFalse(update.in_tune)

    def test_no_pitch(self):
        update = self.sing(None, 0, 0, clarity=0.1)[0]
        self.assertEqual(update.status_text, "No pitch detected")
        self.assertFalse(update.has_pitch)

    def test_low_confidence_reads_as_no_pitch(self):
        update = self.sing(440.0, 0, 0, clarity=0.2)[0]
        self.assertEqual(update.status_text, "No pitch detected")

    def test_wrong_note(self):
        update = self.sing(493.88, 0, 0)[0]
        self.assertEqual(update.status_text, "Detected B. Target is A.")
        self.assertEqual(update.detected_pitch_class, 11)
        self.assertFalse(update.in_tune)
        self.assertTrue(update.has_pitch)

    def test_line_offset_is_relative_to_anchor(self):
        update = self.sing(452.0, 0, 0)[0]
        expected = (hz_to_note_number(452.0) - 69) * 100
        self.assertAlmostEqual(update.line_offset_cents, expected, places=6)
        self.assertEqual(self.session.anchor, 69)


class TestWrongNoteCooldown(SessionTestCase):
    def test_wrong_note_event_is_rate_limited(self):
        self.sing(493.88, 0, 2900)
        events = self.events_of(SessionEventType.WRONG_NOTE)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0][0], 11)
        self.assertEqual(events[0][1].pitch_class, A)
        self.assertEqual(self.session.cooldown_until_ms, 3000)

        self.sing(493.88, 3000, 3000)
        self.assertEqual(len(self.events_of(SessionEventType.WRONG_NOTE)), 2)
        self.assertEqual(self.session.cooldown_until_ms, 6000)

    def test_new_target_clears_cooldown(self):
        self.sing(493.88, 0, 0)
        self.session.select_target(A)
        self.assertIsNone(self.session.cooldown_until_ms)
        self.sing(493.88, 100, 100)
        self.assertEqual(len(self.events_of(SessionEventType.WRONG_NOTE)), 2)


class TestVoiceRange(SessionTestCase):
    def test_auto_range_follows_low_singing(self):
        updates = self.sing(220.0, 0, 1000)
        self.assertIs(updates[0].voice_range, VoiceRange.TREBLE)
        self.assertIs(updates[-1].voice_range, VoiceRange.BASS)
        self.assertEqual(self.session.anchor, 57)

    def test_manual_range(self):
        self.session.set_voice_mode(VoiceMode.BASS)
        self.assertIs(self.session.voice_mode, VoiceMode.BASS)
        update = self.sing(440.0, 0, 0)[0]
        self.assertIs(update.voice_range, VoiceRange.BASS)
        self.assertEqual(self.session.anchor, 57)
        self.assertAlmostEqual(update.line_offset_cents, 1200.0, places=6)


class TestSettings(unittest.TestCase):
    def setUp(self):
        self.session = PitchSession(PitchTracker(estimator=ScriptedEstimator()))

    def test_defaults(self):
        self.assertEqual(self.session.hold_seconds, 5.0)
        self.assertEqual(self.session.cents_tolerance, 35.0)

    def test_hold_seconds_clamped(self):
        self.session.hold_seconds = 0.2
        self.assertEqual(self.session.hold_seconds, 1.0)
        self.session.hold_seconds = math.nan
        self.assertEqual(self.session.hold_seconds, 5.0)
        self.session.hold_seconds = 8
        self.assertEqual(self.session.hold_seconds, 8.0)

    def test_tolerance_clamped(self):
        self.session.cents_tolerance = 200
        self.assertEqual(self.session.cents_tolerance, 80.0)
        self.session.cents_tolerance = 2
        self.assertEqual(self.session.cents_tolerance, 10.0)
        self.session.cents_tolerance = math.inf
        self.assertEqual(self.session.cents_tolerance, 35.0)

    def test_invalid_order(self):
        with self.assertRaises(ValueError):
            PitchSession(PitchTracker(estimator=ScriptedEstimator()), order="shuffled")


class TestTargets(unittest.TestCase):
    def test_sequential_order_wraps(self):
        session = PitchSession(PitchTracker(estimator=ScriptedEstimator()), order="sequential")
        session.select_target(len(DEFAULT_NOTES) - 1)
        self.assertEqual(session.next_target().pitch_class, 0)
        self.assertEqual(session.next_target().pitch_class, 1)

    def test_random_order_never_repeats(self):
        session = PitchSession(
            PitchTracker(estimator=ScriptedEstimator()), rng=random.Random(3)
        )
        previous = session.target
        for _ in range(50):
            current = session.next_target()
            self.assertNotEqual(current, previous)
            previous = current

    def test_single_note_catalogue(self):
        session = PitchSession(PitchTracker(estimator=ScriptedEstimator()), notes=DEFAULT_NOTES[:1])
        self.assertEqual(session.next_target(), DEFAULT_NOTES[0])

    def test_select_target_out_of_range(self):
        session = PitchSession(PitchTracker(estimator=ScriptedEstimator()))
        with self.assertRaises(IndexError):
            session.select_target(12)

    def test_target_change_event(self):
        session = PitchSession(PitchTracker(estimator=ScriptedEstimator()))
        seen = []
        session.events.on(SessionEventType.TARGET_CHANGED, seen.append)
        session.select_target(4)
        self.assertEqual([note.label for note in seen], ["E"])

    def test_reset_clears_progress(self):
        tracker = PitchTracker(estimator=ScriptedEstimator(), clock=lambda: 0.0)
        session = PitchSession(tracker, hold_seconds=1.0)
        session.select_target(A)
        tracker.ingest(LOUD, 0)
        session.step(0)
        session.reset()
        self.assertEqual(tracker.snapshot(), ())
        self.assertIsNone(session.anchor)
        self.assertEqual(session.step(100).status_text, "No pitch detected")


if __name__ == "__main__":
    unittest.main()
