"""Data containers for stations, tracks and search results.

Payloads from the station service are camelCase JSON objects; each model
exposes ``from_dict`` to turn one into a dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class Rating(Enum):
    NONE = "none"
    LOVE = "love"
    BAN = "ban"

    @classmethod
    def parse(cls, raw: Any) -> "Rating":
        try:
            return cls(str(raw).lower())
        except ValueError:
            return cls.NONE


@dataclass(slots=True)
class Station:
    """A station owned by (or shared with) the logged-in user."""

    id: str
    name: str
    is_creator: bool = False
    is_quickmix: bool = False
    use_quickmix: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Station":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            is_creator=bool(data.get("isCreator", False)),
            is_quickmix=bool(data.get("isQuickMix", False)),
            use_quickmix=bool(data.get("useQuickMix", False)),
        )


@dataclass(slots=True)
class Track:
    """One playlist entry."""

    id: str
    title: str
    artist: str
    album: str
    audio_url: str
    rating: Rating = Rating.NONE
    station_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        return cls(
            id=str(data.get("musicId") or data.get("id", "")),
            title=data.get("title", ""),
            artist=data.get("artist", ""),
            album=data.get("album", ""),
            audio_url=data.get("audioUrl", ""),
            rating=Rating.parse(data.get("rating")),
            station_id=data.get("stationId"),
        )


@dataclass(slots=True)
class Artist:
    music_id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Artist":
        return cls(music_id=str(data["musicId"]), name=data.get("name", ""))


@dataclass(slots=True)
class SearchResult:
    artists: list[Artist] = field(default_factory=list)
    songs: list[Track] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        return cls(
            artists=[Artist.from_dict(a) for a in data.get("artists") or []],
            songs=[Track.from_dict(s) for s in data.get("songs") or []],
        )

    @property
    def empty(self) -> bool:
        return not self.artists and not self.songs


@dataclass(slots=True)
class GenreCategory:
    name: str
    stations: list[Station] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenreCategory":
        return cls(
            name=data.get("name", ""),
            stations=[Station.from_dict(s) for s in data.get("stations") or []],
        )


def find_station_by_id(stations: Iterable[Station], station_id: str | None) -> Station | None:
    """Return the station whose id is ``station_id`` or ``None``."""

    for station in stations:
        if station.id == station_id:
            return station
    return None
