"""Console output and the one-shot list-and-choose pickers."""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.prompt import Prompt

from logger_utils import setup_logger
from models import Artist, GenreCategory, Station, Track

logger = setup_logger(__name__)


class Ui:
    """Plain terminal output plus prompts that cooperate with the keyboard source."""

    def __init__(self, keyboard, console: Console | None = None):
        self.keyboard = keyboard
        self.console = console or Console(highlight=False)

    def msg(self, text: str) -> None:
        """Print ``text`` as-is, without adding a newline."""

        self.console.print(text, end="", markup=False)

    def line(self, text: str = "") -> None:
        self.console.print(text, markup=False)

    def progress(self, text: str) -> None:
        self.console.print(text, end="\r", markup=False)

    def prompt(self, text: str, password: bool = False) -> str:
        with self.keyboard.line_mode():
            answer = Prompt.ask(text, console=self.console, password=password, default="", show_default=False)
        return (answer or "").strip()

    def read_int(self, text: str) -> int | None:
        answer = self.prompt(text)
        if not answer or not answer.isdigit():
            return None
        return int(answer)

    def read_key(self) -> str | None:
        return self.keyboard.read_key()


def _pick(ui: Ui, items: Sequence, prompt: str):
    index = ui.read_int(prompt)
    if index is None or index >= len(items):
        return None
    return items[index]


def select_station(ui: Ui, stations: Sequence[Station], prompt: str) -> Station | None:
    for i, station in enumerate(stations):
        suffix = " (QuickMix)" if station.use_quickmix else ""
        ui.line(f"{i:2d}) {station.name}{suffix}")
    return _pick(ui, stations, prompt)


def select_song(ui: Ui, songs: Sequence[Track]) -> Track | None:
    for i, song in enumerate(songs):
        ui.line(f"{i:2d}) {song.artist} - {song.title}")
    return _pick(ui, songs, "Select song: ")


def select_artist(ui: Ui, artists: Sequence[Artist]) -> Artist | None:
    for i, artist in enumerate(artists):
        ui.line(f"{i:2d}) {artist.name}")
    return _pick(ui, artists, "Select artist: ")


def select_category(ui: Ui, categories: Sequence[GenreCategory]) -> GenreCategory | None:
    for i, category in enumerate(categories):
        ui.line(f"{i:2d}) {category.name}")
    return _pick(ui, categories, "Select category: ")


def select_music_id(ui: Ui, client) -> str | None:
    """Search the service and let the user pick an artist or song.

    Returns the chosen music id, or ``None`` when nothing was found or the
    user aborted. :class:`radio_client.RadioError` propagates to the caller.
    """

    query = ui.prompt("Search for artist/title: ")
    if not query:
        ui.msg("Aborted.\n")
        return None

    ui.msg("Searching... ")
    result = client.search(query)
    ui.msg("\r")

    if result.artists and result.songs:
        ui.msg("Is this an [a]rtist or [t]rack name? Press c to abort.\n")
        choice = ui.read_key()
        if choice == "a":
            artist = select_artist(ui, result.artists)
            return artist.music_id if artist else None
        if choice == "t":
            song = select_song(ui, result.songs)
            return song.id if song else None
        ui.msg("Aborted.\n")
        return None
    if result.songs:
        song = select_song(ui, result.songs)
        if song is None:
            ui.msg("Aborted.\n")
            return None
        return song.id
    if result.artists:
        artist = select_artist(ui, result.artists)
        if artist is None:
            ui.msg("Aborted.\n")
            return None
        return artist.music_id
    ui.msg("Nothing found...\n")
    return None
