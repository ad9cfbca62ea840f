# radio_client.py
"""Thin JSON-over-HTTP client for the radio station service.

Every call POSTs ``{"method": ..., "auth": <token>, ...}`` to
``<api_url>/<method>`` and expects ``{"stat": "ok", "result": ...}`` back.
Any transport or service failure surfaces as :class:`RadioError`.
"""

from __future__ import annotations

from typing import Any, Iterable

import requests
from requests.exceptions import RequestException

from logger_utils import setup_logger
from models import GenreCategory, Rating, SearchResult, Station, Track

# Connect timeout matches the 60s the control connection always used.
CONNECT_TIMEOUT = 60


class RadioError(Exception):
    """Raised when a station-service call fails."""


class RadioClient:
    def __init__(
        self,
        api_url: str,
        proxy: str | None = None,
        read_timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = (CONNECT_TIMEOUT, read_timeout)
        self.http = session or requests.Session()
        if proxy:
            self.http.proxies.update({"http": proxy, "https": proxy})
        self.auth_token: str | None = None
        self.user_id: str | None = None
        self.logger = setup_logger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    def _url(self, method: str, secure: bool | None = None) -> str:
        url = f"{self.api_url}/{method}"
        if secure is True and url.startswith("http://"):
            url = "https://" + url[len("http://"):]
        elif secure is False and url.startswith("https://"):
            url = "http://" + url[len("https://"):]
        return url

    def _call(self, method: str, secure: bool | None = None, **params: Any) -> Any:
        payload = {"method": method, "auth": self.auth_token, **params}
        url = self._url(method, secure)
        self.logger.debug("POST %s", url)
        try:
            resp = self.http.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except RequestException as e:
            self.logger.error("%s failed: %s", method, e)
            raise RadioError(f"{method}: {e}") from e
        except ValueError as e:
            self.logger.error("%s returned invalid JSON: %s", method, e)
            raise RadioError(f"{method}: invalid response") from e

        if not isinstance(body, dict) or body.get("stat") != "ok":
            message = body.get("message", "unknown error") if isinstance(body, dict) else body
            self.logger.error("%s rejected by service: %s", method, message)
            raise RadioError(f"{method}: {message}")
        return body.get("result")

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------
    def login(self, username: str, password: str, secure: bool = True) -> None:
        self.auth_token = None
        result = self._call(
            "login", secure=secure, username=username, password=password
        ) or {}
        token = result.get("authToken")
        if not token:
            raise RadioError("login: no auth token returned")
        self.auth_token = token
        self.user_id = result.get("userId")
        self.logger.info("Logged in as %s", username)

    # ------------------------------------------------------------------
    # stations
    # ------------------------------------------------------------------
    def fetch_stations(self) -> list[Station]:
        result = self._call("getStations") or []
        return [Station.from_dict(s) for s in result]

    def fetch_playlist(self, station_id: str) -> list[Track]:
        result = self._call("getPlaylist", stationId=station_id) or []
        tracks = [Track.from_dict(t) for t in result]
        for track in tracks:
            if track.station_id is None:
                track.station_id = station_id
        return tracks

    def fetch_genre_stations(self) -> list[GenreCategory]:
        result = self._call("getGenreStations") or []
        return [GenreCategory.from_dict(c) for c in result]

    def create_station(self, kind: str, music_id: str) -> Station | None:
        """Create a station; ``kind`` is ``"mi"`` (music id) or ``"sh"`` (shared)."""

        result = self._call("createStation", type=kind, id=music_id)
        return Station.from_dict(result) if result else None

    def add_music(self, station: Station, music_id: str) -> None:
        self._call("addSeed", stationId=station.id, musicId=music_id)

    def delete_station(self, station: Station) -> None:
        self._call("removeStation", stationId=station.id)

    def rename_station(self, station: Station, name: str) -> None:
        self._call("setStationName", stationId=station.id, name=name)

    def transform_shared(self, station: Station) -> None:
        self._call("transformShared", stationId=station.id)

    def set_quickmix(self, stations: Iterable[Station]) -> None:
        ids = [s.id for s in stations if s.use_quickmix]
        self._call("setQuickMix", stationIds=ids)

    # ------------------------------------------------------------------
    # tracks
    # ------------------------------------------------------------------
    def rate_track(self, track: Track, rating: Rating) -> None:
        self._call(
            "addFeedback",
            stationId=track.station_id,
            musicId=track.id,
            rating=rating.value,
        )

    def mark_tired(self, track: Track) -> None:
        self._call("addTiredSong", musicId=track.id)

    def move_track(self, track: Track, from_station: Station, to_station: Station) -> None:
        self._call(
            "moveSong",
            musicId=track.id,
            fromStationId=from_station.id,
            toStationId=to_station.id,
        )

    def search(self, query: str) -> SearchResult:
        result = self._call("search", searchText=query) or {}
        return SearchResult.from_dict(result)
