"""Helpers for submitting play history to Last.fm.

This module provides a thin wrapper around :mod:`pylast` for submitting
"now playing" updates and scrobbles. The network handle is built lazily on
first use, from either a stored session key or the user's name and password.
"""

from __future__ import annotations

import pylast

from logger_utils import setup_logger

logger = setup_logger(__name__)


class LastfmClient:
    def __init__(
        self,
        api_key: str | None,
        api_secret: str | None,
        username: str | None = None,
        password: str | None = None,
        session_key: str | None = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.username = username
        self.password = password
        self.session_key = session_key
        self._network: pylast.LastFMNetwork | None = None

    def get_network(self) -> pylast.LastFMNetwork | None:
        """Return an authenticated :class:`pylast.LastFMNetwork` instance."""

        if self._network is not None:
            return self._network

        if not (self.api_key and self.api_secret):
            logger.warning("Last.fm API credentials not configured")
            return None

        if self.session_key:
            self._network = pylast.LastFMNetwork(
                api_key=self.api_key,
                api_secret=self.api_secret,
                session_key=self.session_key,
            )
        elif self.username and self.password:
            try:
                self._network = pylast.LastFMNetwork(
                    api_key=self.api_key,
                    api_secret=self.api_secret,
                    username=self.username,
                    password_hash=pylast.md5(self.password),
                )
            except (pylast.WSError, pylast.NetworkError) as e:
                logger.error("Last.fm login failed: %s", e)
                return None
        else:
            logger.warning("Last.fm user credentials not configured")
            return None
        return self._network

    def update_now_playing(self, track) -> bool:
        """Submit the currently playing track to Last.fm.

        Only sent over a network handle that already exists; this runs when a
        track starts and must not trigger the login round trip.
        """

        network = self._network
        if network is None:
            logger.debug("Skipping now playing; Last.fm not connected yet")
            return False
        try:
            network.update_now_playing(
                artist=track.artist, title=track.title, album=track.album or None
            )
            logger.info("Updated now playing: %s - %s", track.artist, track.title)
            return True
        except Exception as e:  # noqa: BLE001
            # now playing is best-effort
            logger.debug("Last.fm now playing error: %s", e)
            return False

    def scrobble(self, record) -> bool:
        """Record that a track was listened to on Last.fm."""

        network = self.get_network()
        if not network:
            return False
        try:
            network.scrobble(
                artist=record.artist,
                title=record.title,
                timestamp=record.started,
                album=record.album or None,
                duration=int(record.length) if record.length else None,
            )
            logger.info("Scrobbled: %s - %s", record.artist, record.title)
            return True
        except pylast.WSError as e:
            logger.error(
                "Last.fm rejected scrobble: code=%s msg=%s", getattr(e, "status", "?"), e
            )
        except Exception as e:  # noqa: BLE001
            logger.error("Last.fm scrobble error: %s", e)
        return False
