"""Session state: the station directory, the playlist and the player lifecycle.

:class:`Session` is the one object the control loop and the command
dispatcher share. Each loop iteration calls :meth:`Session.reap` and then
:meth:`Session.advance`; together they guarantee that at most one player is
alive and that a new one only starts after the previous thread was joined.
"""

from __future__ import annotations

from typing import Callable, Sequence

from logger_utils import setup_logger
from models import GenreCategory, Rating, Station, Track, find_station_by_id
from player import PlayerHandle
from radio_client import RadioError
from scrobbling import ScrobbleCoordinator, ScrobbleRecord

logger = setup_logger(__name__)


class Playlist:
    """Forward-only view over the tracks of the last fetched playlist."""

    def __init__(self, tracks: Sequence[Track] = ()):
        self.tracks: list[Track] = []
        self.index: int | None = None
        self.replace(tracks)

    def replace(self, tracks: Sequence[Track]) -> None:
        self.tracks = list(tracks)
        self.index = 0 if self.tracks else None

    def clear(self) -> None:
        self.tracks = []
        self.index = None

    @property
    def current(self) -> Track | None:
        if self.index is None:
            return None
        return self.tracks[self.index]

    @property
    def exhausted(self) -> bool:
        return self.index is None

    def advance(self) -> Track | None:
        if self.index is not None:
            self.index += 1
            if self.index >= len(self.tracks):
                self.index = None
        return self.current

    def upcoming(self) -> list[Track]:
        if self.index is None:
            return []
        return self.tracks[self.index + 1:]


class StationDirectory:
    """Local copy of the user's stations, the playlist and genre stations."""

    def __init__(self, stations: Sequence[Station] = ()):
        self.stations: list[Station] = list(stations)
        self.playlist = Playlist()
        self.genre_categories: list[GenreCategory] | None = None

    def find(self, station_id: str | None) -> Station | None:
        return find_station_by_id(self.stations, station_id)

    def add(self, station: Station | None) -> None:
        if station is not None and self.find(station.id) is None:
            self.stations.append(station)

    def remove(self, station: Station) -> None:
        self.stations = [s for s in self.stations if s.id != station.id]


PlayerFactory = Callable[[str], PlayerHandle]


class Session:
    def __init__(
        self,
        client,
        directory: StationDirectory,
        scrobbler: ScrobbleCoordinator,
        ui,
        player_factory: PlayerFactory,
        station: Station | None = None,
    ):
        self.client = client
        self.directory = directory
        self.scrobbler = scrobbler
        self.ui = ui
        self.player_factory = player_factory
        self.station = station
        self.player: PlayerHandle | None = None
        self.quit_requested = False

    @property
    def playlist(self) -> Playlist:
        return self.directory.playlist

    @property
    def track(self) -> Track | None:
        return self.playlist.current

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def reap(self) -> bool:
        """Retire a finished player: scrobble, join its thread and drop it."""

        if self.player is None or not self.player.status.retired:
            return False
        player, status = self.player, self.player.status
        if status.error:
            logger.warning("Player for %s ended with error: %s", player.url, status.error)
        self.scrobbler.finalize(status)
        player.join()
        self.player = None
        return True

    def advance(self) -> None:
        """Move to the next track, refetching the playlist when it runs out."""

        if self.player is not None or self.station is None:
            return

        if self.playlist.current is not None:
            self.playlist.advance()

        if self.playlist.exhausted:
            self._refetch_playlist()

        track = self.playlist.current
        if track is not None:
            self._start(track)

    def _refetch_playlist(self) -> None:
        self.ui.msg("Receiving new playlist... ")
        self.playlist.clear()
        try:
            tracks = self.client.fetch_playlist(self.station.id)
        except RadioError as e:
            logger.error("Playlist fetch for %s failed: %s", self.station.name, e)
            self.ui.msg("Error.\n")
            self.station = None
            return
        self.playlist.replace(tracks)
        if self.playlist.exhausted:
            self.ui.msg("No tracks left.\n")
            self.station = None
        else:
            self.ui.msg("Ok.\n")

    def _start(self, track: Track) -> None:
        self.ui.line(self.describe(track))
        self.scrobbler.begin(ScrobbleRecord.for_track(track))
        self.scrobbler.now_playing(track)
        self.player = self.player_factory(track.audio_url)

    def describe(self, track: Track) -> str:
        text = f'"{track.title}" by "{track.artist}" on "{track.album}"'
        if track.rating is Rating.LOVE:
            text += " (Loved)"
        if self.station is not None and self.station.is_quickmix:
            origin = self.directory.find(track.station_id)
            text += f" @ {origin.name if origin else '?'}"
        return text

    # ------------------------------------------------------------------
    # controls
    # ------------------------------------------------------------------
    def request_stop(self) -> None:
        if self.player is not None:
            self.player.request_stop()

    def toggle_pause(self) -> bool | None:
        if self.player is None:
            return None
        return self.player.toggle_pause()

    def clear_playlist(self) -> None:
        self.playlist.clear()

    def clear_station(self) -> None:
        self.playlist.clear()
        self.station = None

    def shutdown(self) -> None:
        """Stop a live player and wait for its thread to end."""

        if self.player is not None:
            self.player.request_stop()
            self.player.join()
            self.player = None
