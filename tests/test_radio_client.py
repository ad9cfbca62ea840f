import os
import sys
import tempfile
import unittest
from unittest.mock import MagicMock

import requests

os.environ.setdefault(
    "STATIONBAR_LOG_PATH", os.path.join(tempfile.gettempdir(), "stationbar-tests.log")
)
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from models import Rating, Station, Track
from radio_client import CONNECT_TIMEOUT, RadioClient, RadioError


def response(body, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


class RadioClientTest(unittest.TestCase):
    def setUp(self):
        self.http = MagicMock()
        self.http.proxies = {}
        self.client = RadioClient("http://radio.test/api/", session=self.http, read_timeout=5)
        self.client.auth_token = "tok"

    def reply(self, result):
        self.http.post.return_value = response({"stat": "ok", "result": result})

    def sent(self):
        args, kwargs = self.http.post.call_args
        return args[0], kwargs["json"]

    def test_fetch_stations(self):
        self.reply([
            {"id": 1, "name": "Rock", "isCreator": True},
            {"id": "qm", "name": "QuickMix", "isQuickMix": True},
        ])
        stations = self.client.fetch_stations()
        self.assertEqual([s.id for s in stations], ["1", "qm"])
        self.assertTrue(stations[0].is_creator)
        self.assertTrue(stations[1].is_quickmix)
        url, payload = self.sent()
        self.assertEqual(url, "http://radio.test/api/getStations")
        self.assertEqual(payload, {"method": "getStations", "auth": "tok"})
        self.assertEqual(self.http.post.call_args.kwargs["timeout"], (CONNECT_TIMEOUT, 5))

    def test_fetch_playlist_fills_station_id(self):
        self.reply([
            {"musicId": "m1", "title": "Song", "artist": "Band", "album": "LP",
             "audioUrl": "http://audio/m1", "rating": "love"},
            {"musicId": "m2", "title": "Other", "artist": "Band", "album": "LP",
             "audioUrl": "http://audio/m2", "stationId": "s9"},
        ])
        tracks = self.client.fetch_playlist("s1")
        self.assertEqual(tracks[0].station_id, "s1")
        self.assertEqual(tracks[0].rating, Rating.LOVE)
        self.assertEqual(tracks[1].station_id, "s9")
        self.assertEqual(tracks[1].rating, Rating.NONE)

    def test_empty_playlist_is_success(self):
        self.reply([])
        self.assertEqual(self.client.fetch_playlist("s1"), [])

    def test_login_uses_https_unless_disabled(self):
        self.reply({"authToken": "new", "userId": "u1"})
        self.client.login("me", "pw")
        url, payload = self.sent()
        self.assertEqual(url, "https://radio.test/api/login")
        self.assertEqual(payload["username"], "me")
        self.assertEqual(self.client.auth_token, "new")

        self.client.login("me", "pw", secure=False)
        url, _ = self.sent()
        self.assertEqual(url, "http://radio.test/api/login")

    def test_login_without_token_fails(self):
        self.reply({})
        with self.assertRaises(RadioError):
            self.client.login("me", "pw")
        self.assertIsNone(self.client.auth_token)

    def test_service_failure_raises(self):
        self.http.post.return_value = response({"stat": "fail", "message": "no such station"})
        with self.assertRaises(RadioError) as ctx:
            self.client.delete_station(Station("s1", "Rock"))
        self.assertIn("no such station", str(ctx.exception))

    def test_http_error_raises(self):
        self.http.post.return_value = response({}, status=500)
        with self.assertRaises(RadioError):
            self.client.fetch_stations()

    def test_network_error_raises(self):
        self.http.post.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(RadioError):
            self.client.fetch_stations()

    def test_invalid_json_raises(self):
        resp = response(None)
        resp.json.side_effect = ValueError("not json")
        self.http.post.return_value = resp
        with self.assertRaises(RadioError):
            self.client.fetch_stations()

    def test_rate_track_sends_rating(self):
        self.reply(None)
        track = Track("m1", "Song", "Band", "LP", "http://a", station_id="s1")
        self.client.rate_track(track, Rating.BAN)
        _, payload = self.sent()
        self.assertEqual(payload["rating"], "ban")
        self.assertEqual(payload["stationId"], "s1")

    def test_set_quickmix_sends_selected_ids(self):
        self.reply(None)
        self.client.set_quickmix([
            Station("1", "A", use_quickmix=True),
            Station("2", "B"),
            Station("3", "C", use_quickmix=True),
        ])
        _, payload = self.sent()
        self.assertEqual(payload["stationIds"], ["1", "3"])

    def test_search_parses_artists_and_songs(self):
        self.reply({
            "artists": [{"musicId": "a1", "name": "Band"}],
            "songs": [{"musicId": "m1", "title": "Song", "artist": "Band"}],
        })
        result = self.client.search("band")
        self.assertEqual(result.artists[0].music_id, "a1")
        self.assertEqual(result.songs[0].id, "m1")
        self.assertFalse(result.empty)

    def test_create_station_returns_station(self):
        self.reply({"id": "s5", "name": "Band Radio", "isCreator": True})
        station = self.client.create_station("mi", "a1")
        self.assertEqual(station.id, "s5")
        _, payload = self.sent()
        self.assertEqual((payload["type"], payload["id"]), ("mi", "a1"))

    def test_proxy_is_applied(self):
        http = MagicMock()
        http.proxies = {}
        RadioClient("http://radio.test", proxy="socks5://127.0.0.1:9050", session=http)
        self.assertEqual(http.proxies["https"], "socks5://127.0.0.1:9050")


if __name__ == "__main__":
    unittest.main()
