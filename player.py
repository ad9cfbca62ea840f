"""Background audio worker and the handle the control loop drives it through.

The worker runs in its own thread and never shares mutable fields with the
loop. It publishes immutable :class:`PlayerStatus` snapshots on one queue and
reads :class:`PlayerCommand` values from another. Decoding and output are
delegated to external programs (``ffprobe``/``ffmpeg`` and a PCM sink such
as ``aplay``).
"""

from __future__ import annotations

import json
import queue
import shlex
import subprocess
import threading
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import IO, Protocol

from logger_utils import setup_logger

logger = setup_logger(__name__)

BYTES_PER_SAMPLE = 2  # s16le
CHUNK_SIZE = 8192
PAUSE_WAIT = 0.1
PROBE_TIMEOUT = 30
DRAIN_TIMEOUT = 5


class PlayerMode(IntEnum):
    NOT_STARTED = 0
    METADATA_PENDING = 1
    METADATA_READY = 2
    PLAYING = 3
    PAUSED = 4
    FINISHED = 5
    ERROR = 6


class PlayerCommand(Enum):
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"


class PlayerError(Exception):
    """Raised by a backend when probing, decoding or output fails."""


@dataclass(frozen=True)
class PlayerStatus:
    mode: PlayerMode = PlayerMode.NOT_STARTED
    sample_rate: int = 0
    channels: int = 0
    total_samples: int = 0
    consumed_samples: int = 0
    error: str | None = None

    @property
    def retired(self) -> bool:
        return self.mode >= PlayerMode.FINISHED

    @property
    def displayable(self) -> bool:
        return PlayerMode.METADATA_READY <= self.mode < PlayerMode.FINISHED


class Backend(Protocol):
    def probe(self, url: str) -> tuple[int, int, int]: ...

    def open_decoder(self, url: str, sample_rate: int, channels: int) -> subprocess.Popen: ...

    def open_sink(self, sample_rate: int, channels: int) -> subprocess.Popen: ...


class FfmpegBackend:
    """Decode with ffmpeg and hand raw PCM to a sink command."""

    def __init__(
        self,
        decoder: str = "ffmpeg",
        probe: str = "ffprobe",
        sink_command: str = "aplay -q -t raw -f S16_LE -r {rate} -c {channels}",
    ):
        self.decoder = decoder
        self.prober = probe
        self.sink_command = sink_command

    def probe(self, url: str) -> tuple[int, int, int]:
        """Return ``(sample_rate, channels, total_samples)`` for ``url``."""

        cmd = [
            self.prober, "-v", "error",
            "-select_streams", "a:0",
            "-show_entries", "stream=sample_rate,channels:format=duration",
            "-of", "json",
            url,
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=PROBE_TIMEOUT
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise PlayerError(f"ffprobe failed: {e}") from e
        if result.returncode != 0:
            raise PlayerError(f"ffprobe exited {result.returncode}: {result.stderr.strip()}")
        try:
            info = json.loads(result.stdout)
            stream = info["streams"][0]
            sample_rate = int(stream["sample_rate"])
            channels = int(stream["channels"])
            duration = float(info["format"]["duration"])
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise PlayerError(f"unusable ffprobe output: {e}") from e
        return sample_rate, channels, int(duration * sample_rate)

    def open_decoder(self, url: str, sample_rate: int, channels: int) -> subprocess.Popen:
        cmd = [
            self.decoder, "-v", "error",
            "-i", url,
            "-vn",
            "-f", "s16le",
            "-acodec", "pcm_s16le",
            "-ar", str(sample_rate),
            "-ac", str(channels),
            "-",
        ]
        try:
            return subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
        except OSError as e:
            raise PlayerError(f"cannot start decoder: {e}") from e

    def open_sink(self, sample_rate: int, channels: int) -> subprocess.Popen:
        cmd = [
            arg.format(rate=sample_rate, channels=channels)
            for arg in shlex.split(self.sink_command)
        ]
        try:
            return subprocess.Popen(
                cmd, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
            )
        except OSError as e:
            raise PlayerError(f"cannot start audio sink: {e}") from e


def _close_process(proc: subprocess.Popen | None, drain: bool = False) -> None:
    """Close ``proc``'s pipes and reap it.

    With ``drain`` the process gets up to ``DRAIN_TIMEOUT`` seconds to finish
    on its own after its stdin hits EOF (the sink still has buffered audio to
    play); otherwise, or when it overruns, it is killed.
    """

    if proc is None:
        return
    for stream in (proc.stdin, proc.stdout):
        if stream is not None:
            try:
                stream.close()
            except OSError:
                pass
    if drain:
        try:
            proc.wait(timeout=DRAIN_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("Process %s still running after %ss", proc.args, DRAIN_TIMEOUT)
    if proc.poll() is None:
        proc.kill()
    try:
        proc.wait(timeout=1)
    except subprocess.TimeoutExpired:
        logger.warning("Process %s did not exit after kill", proc.args)


class PlayerThread(threading.Thread):
    """Plays one audio URL and reports progress until it finishes or is stopped."""

    def __init__(
        self,
        url: str,
        backend: Backend,
        status_queue: "queue.Queue[PlayerStatus]",
        command_queue: "queue.Queue[PlayerCommand]",
    ):
        super().__init__(name="player", daemon=True)
        self.url = url
        self.backend = backend
        self.status_queue = status_queue
        self.command_queue = command_queue
        self._status = PlayerStatus()
        self._paused = False
        self._stopped = False

    def _publish(self, **changes) -> None:
        self._status = replace(self._status, **changes)
        self.status_queue.put(self._status)

    def _handle(self, command: PlayerCommand) -> None:
        if command is PlayerCommand.STOP:
            self._stopped = True
        elif command is PlayerCommand.PAUSE:
            self._paused = True
        elif command is PlayerCommand.RESUME:
            self._paused = False

    def _drain_commands(self, block: bool = False) -> None:
        try:
            self._handle(self.command_queue.get(block=block, timeout=PAUSE_WAIT if block else None))
            while True:
                self._handle(self.command_queue.get_nowait())
        except queue.Empty:
            pass

    def run(self) -> None:
        decoder = sink = None
        drain = False
        try:
            self._publish(mode=PlayerMode.METADATA_PENDING)
            sample_rate, channels, total = self.backend.probe(self.url)
            self._publish(
                mode=PlayerMode.METADATA_READY,
                sample_rate=sample_rate,
                channels=channels,
                total_samples=total,
            )
            self._drain_commands()
            if self._stopped:
                return

            decoder = self.backend.open_decoder(self.url, sample_rate, channels)
            sink = self.backend.open_sink(sample_rate, channels)
            self._publish(mode=PlayerMode.PLAYING)
            self._pump(decoder.stdout, sink.stdin, channels)
            # end of stream: let the sink play out what it already has
            drain = not self._stopped
        except PlayerError as e:
            logger.error("Playback of %s failed: %s", self.url, e)
            self._publish(mode=PlayerMode.ERROR, error=str(e))
        except OSError as e:
            logger.error("Audio I/O error for %s: %s", self.url, e)
            self._publish(mode=PlayerMode.ERROR, error=str(e))
        finally:
            _close_process(decoder)
            _close_process(sink, drain=drain)
            if self._status.mode < PlayerMode.FINISHED:
                self._publish(mode=PlayerMode.FINISHED)

    def _pump(self, source: IO[bytes], sink: IO[bytes], channels: int) -> None:
        frame_size = BYTES_PER_SAMPLE * max(channels, 1)
        consumed = 0
        leftover = 0
        while True:
            self._drain_commands()
            if self._stopped:
                return
            if self._paused:
                if self._status.mode != PlayerMode.PAUSED:
                    self._publish(mode=PlayerMode.PAUSED)
                self._drain_commands(block=True)
                continue
            if self._status.mode != PlayerMode.PLAYING:
                self._publish(mode=PlayerMode.PLAYING)

            chunk = source.read(CHUNK_SIZE)
            if not chunk:
                return
            try:
                sink.write(chunk)
                sink.flush()
            except BrokenPipeError as e:
                raise PlayerError("audio sink closed") from e
            leftover += len(chunk)
            consumed += leftover // frame_size
            leftover %= frame_size
            self._publish(consumed_samples=consumed)


class PlayerHandle:
    """The control loop's end of a running :class:`PlayerThread`."""

    def __init__(self, url: str, thread: threading.Thread | None,
                 status_queue: "queue.Queue[PlayerStatus]",
                 command_queue: "queue.Queue[PlayerCommand]"):
        self.url = url
        self.thread = thread
        self.status_queue = status_queue
        self.command_queue = command_queue
        self.status = PlayerStatus()
        self.pause_requested = False
        self.stop_requested = False

    def poll(self) -> PlayerStatus:
        """Fold every pending status update into :attr:`status`."""

        try:
            while True:
                self.status = self.status_queue.get_nowait()
        except queue.Empty:
            pass
        return self.status

    def toggle_pause(self) -> bool:
        self.pause_requested = not self.pause_requested
        self.command_queue.put(
            PlayerCommand.PAUSE if self.pause_requested else PlayerCommand.RESUME
        )
        return self.pause_requested

    def request_stop(self) -> None:
        if not self.stop_requested:
            self.stop_requested = True
            self.command_queue.put(PlayerCommand.STOP)

    @property
    def alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout)
        self.poll()


def start_player(url: str, backend: Backend) -> PlayerHandle:
    """Start a worker thread for ``url`` and return its handle."""

    status_queue: "queue.Queue[PlayerStatus]" = queue.Queue()
    command_queue: "queue.Queue[PlayerCommand]" = queue.Queue()
    thread = PlayerThread(url, backend, status_queue, command_queue)
    handle = PlayerHandle(url, thread, status_queue, command_queue)
    thread.start()
    logger.info("Started player for %s", url)
    return handle
