"""Decide whether a finished track gets scrobbled."""

from __future__ import annotations

import time
from dataclasses import dataclass

from logger_utils import setup_logger

logger = setup_logger(__name__)


def samples_to_seconds(sample_rate: float, channels: float, samples: float) -> float:
    """Convert a sample count reported by the player to seconds.

    Note that this multiplies by the channel count instead of dividing by it,
    so stereo streams come out at twice their wall-clock length. Scrobble
    eligibility only looks at the ratio of two such values, which is
    unaffected.
    """

    if not sample_rate:
        return 0.0
    return channels * samples / sample_rate


@dataclass
class ScrobbleRecord:
    artist: str
    title: str
    album: str
    started: int
    length: float = 0.0
    elapsed: float = 0.0

    @classmethod
    def for_track(cls, track, started: int | None = None) -> "ScrobbleRecord":
        return cls(
            artist=track.artist,
            title=track.title,
            album=track.album,
            started=int(time.time()) if started is None else started,
        )

    @property
    def played_percent(self) -> float:
        if not self.length:
            return 0.0
        return self.elapsed * 100 / self.length


class ScrobbleCoordinator:
    """Holds the pending record for the playing track until its player retires.

    ``history`` is anything with a ``scrobble(record) -> bool`` method, usually
    :class:`lastfm_utils.LastfmClient`.
    """

    def __init__(self, history, ui, enabled: bool, threshold_percent: float):
        self.history = history
        self.ui = ui
        self.enabled = enabled
        self.threshold_percent = threshold_percent
        self.pending: ScrobbleRecord | None = None

    def begin(self, record: ScrobbleRecord) -> None:
        if self.pending is not None:
            logger.warning(
                "Dropping unfinished scrobble record for %s - %s",
                self.pending.artist,
                self.pending.title,
            )
        self.pending = record

    def now_playing(self, track) -> None:
        if self.enabled and self.history is not None:
            self.history.update_now_playing(track)

    def finalize(self, status) -> bool:
        """Submit or discard the pending record using the player's final counters.

        Returns ``True`` only when a submission was made and succeeded.
        """

        record, self.pending = self.pending, None
        if record is None:
            return False

        record.length = samples_to_seconds(
            status.sample_rate, status.channels, status.total_samples
        )
        record.elapsed = samples_to_seconds(
            status.sample_rate, status.channels, status.consumed_samples
        )
        percent = record.played_percent
        logger.debug(
            "%s - %s played %.1f%% (threshold %s%%)",
            record.artist,
            record.title,
            percent,
            self.threshold_percent,
        )
        if not self.enabled or not record.length or percent < self.threshold_percent:
            return False

        self.ui.msg("Scrobbling song... ")
        if self.history is not None and self.history.scrobble(record):
            self.ui.msg("Ok.\n")
            return True
        self.ui.msg("Error.\n")
        return False
