"""Single-keystroke commands available while a station is playing.

Press ``?`` during playback for the list below.
"""

from __future__ import annotations

from typing import Callable

from logger_utils import setup_logger
from models import Rating
from radio_client import RadioError
from session import Session
from ui_utils import Ui, select_category, select_music_id, select_station

logger = setup_logger(__name__)

COMMAND_LABELS = {
    "a": "add music to current station",
    "b": "ban current song",
    "c": "create new station",
    "d": "delete current station",
    "g": "add genre station",
    "l": "love current song",
    "m": "move song to different station",
    "n": "next song",
    "p": "pause/continue",
    "q": "quit",
    "r": "rename current station",
    "s": "change station",
    "t": "tired (ban song for 1 month)",
    "u": "upcoming songs",
    "x": "select quickmix stations",
}

HELP_TEXT = "\n" + "".join(f"{key}\t{label}\n" for key, label in COMMAND_LABELS.items())


class CommandDispatcher:
    def __init__(self, session: Session, ui: Ui):
        self.session = session
        self.ui = ui
        self.handlers: dict[str, Callable[[], None]] = {
            "?": self.show_help,
            "a": self.add_music,
            "b": self.ban_song,
            "c": self.create_station,
            "d": self.delete_station,
            "g": self.genre_station,
            "l": self.love_song,
            "m": self.move_song,
            "n": self.next_song,
            "p": self.toggle_pause,
            "q": self.quit,
            "r": self.rename_station,
            "s": self.change_station,
            "t": self.tired_song,
            "u": self.upcoming_songs,
            "x": self.quickmix,
        }

    @property
    def client(self):
        return self.session.client

    def dispatch(self, key: str | None) -> bool:
        """Run the command bound to ``key``; unknown keys are ignored."""

        handler = self.handlers.get(key) if key else None
        if handler is None:
            return False
        logger.info("Command: %s -> %s", key, COMMAND_LABELS.get(key, "help"))
        try:
            handler()
        except RadioError as e:
            logger.error("Command %r failed: %s", key, e)
            self.ui.msg("Error.\n")
        return True

    # ------------------------------------------------------------------
    # guards
    # ------------------------------------------------------------------
    def _need_station(self) -> bool:
        if self.session.station is None:
            self.ui.msg("No station selected.\n")
            return False
        return True

    def _need_song(self) -> bool:
        if self.session.station is None or self.session.track is None:
            self.ui.msg("No song playing.\n")
            return False
        return True

    def _step(self, label: str, action: Callable[[], object]) -> bool:
        """Print ``label``, run ``action`` and report ``Ok.`` or ``Error.``."""

        self.ui.msg(label)
        try:
            action()
        except RadioError as e:
            logger.error("%s failed: %s", label.strip(" ."), e)
            self.ui.msg("Error.\n")
            return False
        self.ui.msg("Ok.\n")
        return True

    def _ensure_owned(self) -> bool:
        station = self.session.station
        if station.is_creator:
            return True
        if not self._step("Transforming station... ", lambda: self.client.transform_shared(station)):
            return False
        station.is_creator = True
        return True

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------
    def show_help(self) -> None:
        self.ui.msg(HELP_TEXT)

    def add_music(self) -> None:
        if not self._need_station():
            return
        music_id = select_music_id(self.ui, self.client)
        if music_id is None:
            return
        station = self.session.station
        self._step("Adding music to station... ", lambda: self.client.add_music(station, music_id))

    def ban_song(self) -> None:
        if not self._need_song() or not self._ensure_owned():
            return
        track = self.session.track
        if self._step("Banning song... ", lambda: self.client.rate_track(track, Rating.BAN)):
            track.rating = Rating.BAN
            self.session.request_stop()

    def create_station(self) -> None:
        music_id = select_music_id(self.ui, self.client)
        if music_id is None:
            return
        self.ui.msg("Creating station... ")
        try:
            created = self.client.create_station("mi", music_id)
        except RadioError as e:
            logger.error("Creating station failed: %s", e)
            self.ui.msg("Error.\n")
            return
        self.ui.msg("Ok.\n")
        self.session.directory.add(created)

    def delete_station(self) -> None:
        if not self._need_station():
            return
        station = self.session.station
        self.ui.msg(f'Really delete "{station.name}"? [yn]\n')
        if self.ui.read_key() != "y":
            return
        if self._step("Deleting station... ", lambda: self.client.delete_station(station)):
            self.session.request_stop()
            self.session.clear_station()
            self.session.directory.remove(station)

    def genre_station(self) -> None:
        directory = self.session.directory
        if directory.genre_categories is None:
            self.ui.msg("Receiving genre stations... ")
            try:
                directory.genre_categories = self.client.fetch_genre_stations()
            except RadioError as e:
                logger.error("Genre station fetch failed: %s", e)
                self.ui.msg("Error.\n")
                return
            self.ui.msg("Ok.\n")

        category = select_category(self.ui, directory.genre_categories)
        if category is None:
            self.ui.msg("Aborted.\n")
            return
        genre = select_station(self.ui, category.stations, "Select station: ")
        if genre is None:
            self.ui.msg("Aborted.\n")
            return
        self.ui.msg(f'Adding shared station "{genre.name}"... ')
        try:
            created = self.client.create_station("sh", genre.id)
        except RadioError as e:
            logger.error("Adding shared station failed: %s", e)
            self.ui.msg("Error.\n")
            return
        self.ui.msg("Ok.\n")
        directory.add(created)

    def love_song(self) -> None:
        if not self._need_song():
            return
        track = self.session.track
        if track.rating is Rating.LOVE:
            self.ui.msg("Already loved. No need to do this twice.\n")
            return
        if not self._ensure_owned():
            return
        if self._step("Loving song... ", lambda: self.client.rate_track(track, Rating.LOVE)):
            track.rating = Rating.LOVE

    def move_song(self) -> None:
        if not self._need_song():
            return
        destination = select_station(
            self.ui, self.session.directory.stations, "Move song to station: "
        )
        if destination is None:
            return
        station, track = self.session.station, self.session.track
        if self._step(
            f'Moving song to "{destination.name}"... ',
            lambda: self.client.move_track(track, station, destination),
        ):
            self.session.request_stop()

    def next_song(self) -> None:
        self.session.request_stop()

    def toggle_pause(self) -> None:
        self.session.toggle_pause()

    def quit(self) -> None:
        self.session.quit_requested = True
        self.session.request_stop()

    def rename_station(self) -> None:
        if not self._need_station():
            return
        name = self.ui.prompt("New name?")
        if not name:
            return
        station = self.session.station
        if self._step("Renaming station... ", lambda: self.client.rename_station(station, name)):
            station.name = name

    def change_station(self) -> None:
        self.session.request_stop()
        self.session.clear_playlist()
        station = select_station(self.ui, self.session.directory.stations, "Select station: ")
        self.session.station = station
        if station is not None:
            self.ui.line(f"Changed station to {station.name}")

    def tired_song(self) -> None:
        if not self._need_song():
            return
        track = self.session.track
        if self._step("Putting song on shelf... ", lambda: self.client.mark_tired(track)):
            self.session.request_stop()

    def upcoming_songs(self) -> None:
        if not self._need_song():
            return
        upcoming = self.session.playlist.upcoming()
        if not upcoming:
            self.ui.msg("No songs in queue.\n")
            return
        self.ui.msg("Next songs:\n")
        for i, track in enumerate(upcoming):
            self.ui.line(f'{i:2d}) "{track.title}" by "{track.artist}"')

    def quickmix(self) -> None:
        if not self._need_station():
            return
        if not self.session.station.is_quickmix:
            self.ui.msg("Not a QuickMix station.\n")
            return
        stations = self.session.directory.stations
        while True:
            picked = select_station(self.ui, stations, "Toggle quickmix for station: ")
            if picked is None:
                break
            picked.use_quickmix = not picked.use_quickmix
        self._step("Setting quickmix stations... ", lambda: self.client.set_quickmix(stations))
