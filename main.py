"""Interactive terminal client for a streaming radio service.

Press ``?`` during playback to list the single-key controls.
"""

import sys

from rich.console import Console

from commands import CommandDispatcher
from config import Settings, load_settings
from lastfm_utils import LastfmClient
from logger_utils import setup_logger
from player import FfmpegBackend, PlayerStatus, start_player
from radio_client import RadioClient, RadioError
from scrobbling import ScrobbleCoordinator, samples_to_seconds
from session import Session, StationDirectory
from terminal_utils import KeyboardSource
from ui_utils import Ui, select_station

APP_NAME = "stationbar"

logger = setup_logger("StationbarMain")


# ─────────────────────────────────────────────────────────────
# Progress display
# ─────────────────────────────────────────────────────────────
def format_progress(status: PlayerStatus) -> str:
    """Return ``-MM:SS/MM:SS`` (remaining/total) for a player status."""

    length = samples_to_seconds(status.sample_rate, status.channels, status.total_samples)
    remaining = length - samples_to_seconds(
        status.sample_rate, status.channels, status.consumed_samples
    )
    remaining = max(int(remaining), 0)
    length = int(length)
    return f"-{remaining // 60:02d}:{remaining % 60:02d}/{length // 60:02d}:{length % 60:02d}"


# ─────────────────────────────────────────────────────────────
# Control loop
# ─────────────────────────────────────────────────────────────
def run_control_loop(
    session: Session,
    dispatcher: CommandDispatcher,
    keyboard: KeyboardSource,
    ui: Ui,
    poll_timeout: float = 1.0,
) -> None:
    """Drive playback and keystroke handling until quit is requested.

    Each pass reaps a finished player, advances to the next track if nothing
    is playing, waits up to ``poll_timeout`` for a key and finally redraws
    the progress line.
    """

    try:
        while not session.quit_requested:
            if session.player is not None:
                session.player.poll()
            session.reap()
            session.advance()

            key = keyboard.poll(poll_timeout)
            if key is not None:
                dispatcher.dispatch(key)

            if session.player is not None:
                status = session.player.poll()
                if status.displayable:
                    ui.progress(format_progress(status))
    finally:
        session.shutdown()


# ─────────────────────────────────────────────────────────────
# Startup
# ─────────────────────────────────────────────────────────────
def build_session(settings: Settings, client: RadioClient, ui: Ui, stations) -> Session:
    history = LastfmClient(
        api_key=settings.lastfm_api_key,
        api_secret=settings.lastfm_api_secret,
        username=settings.lastfm_user,
        password=settings.lastfm_password,
        session_key=settings.lastfm_session_key,
    )
    scrobbler = ScrobbleCoordinator(
        history,
        ui,
        enabled=settings.enable_scrobbling,
        threshold_percent=settings.scrobble_percent,
    )
    backend = FfmpegBackend(decoder=settings.decoder, sink_command=settings.sink_command)
    return Session(
        client,
        StationDirectory(stations),
        scrobbler,
        ui,
        player_factory=lambda url: start_player(url, backend),
    )


def login(settings: Settings, client: RadioClient, ui: Ui):
    """Log in and fetch the station list; ``None`` on failure."""

    username = settings.username or ui.prompt("Username: ")
    password = settings.password or ui.prompt("Password: ", password=True)

    ui.msg("Login... ")
    try:
        client.login(username, password, secure=not settings.disable_secure_login)
    except RadioError as e:
        logger.error("Login failed: %s", e)
        ui.msg("Error.\n")
        return None
    ui.msg("Ok.\n")

    ui.msg("Get stations... ")
    try:
        stations = client.fetch_stations()
    except RadioError as e:
        logger.error("Station fetch failed: %s", e)
        ui.msg("Error.\n")
        return None
    ui.msg("Ok.\n")
    return stations


def main() -> int:
    settings = load_settings()
    logger.info("Starting %s (api=%s)", APP_NAME, settings.api_url)

    console = Console(highlight=False)
    with KeyboardSource() as keyboard:
        ui = Ui(keyboard, console)
        ui.msg(f"Welcome to {APP_NAME}! Press ? for help.\n")

        client = RadioClient(
            settings.api_url,
            proxy=settings.control_proxy,
            read_timeout=settings.request_timeout,
        )
        stations = login(settings, client, ui)
        if stations is None:
            return 1

        session = build_session(settings, client, ui, stations)
        session.station = select_station(ui, session.directory.stations, "Select station: ")
        if session.station is not None:
            ui.line(f'Playing station "{session.station.name}"')

        dispatcher = CommandDispatcher(session, ui)
        try:
            run_control_loop(session, dispatcher, keyboard, ui, settings.poll_timeout)
        except KeyboardInterrupt:
            ui.line()
        except Exception as e:
            logger.exception("Unexpected error in main loop")
            ui.line(f"\nUnexpected error: {e}")
            return 1
    logger.info("Session ended")
    return 0


if __name__ == "__main__":
    sys.exit(main())
