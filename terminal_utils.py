"""Single-keystroke input with a bounded wait.

:class:`KeyboardSource` switches a TTY to cbreak mode (no echo, no line
buffering) so the control loop can ``poll`` for one key at a time, and hands
the terminal back in its original mode for line prompts.
"""

from __future__ import annotations

import os
import select
import sys
import termios
import tty
from contextlib import contextmanager
from typing import IO, Iterator


class KeyboardSource:
    def __init__(self, stream: IO[str] | None = None):
        self.stream = stream if stream is not None else sys.stdin
        self._saved_attrs = None

    @property
    def is_tty(self) -> bool:
        try:
            return os.isatty(self.stream.fileno())
        except (AttributeError, ValueError, OSError):
            return False

    def __enter__(self) -> "KeyboardSource":
        if self.is_tty:
            fd = self.stream.fileno()
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        return self

    def __exit__(self, *exc) -> None:
        self._restore()

    def _restore(self) -> None:
        if self._saved_attrs is not None:
            termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved_attrs)

    def _read_char(self) -> str | None:
        # os.read avoids the text layer buffering ahead of select()
        data = os.read(self.stream.fileno(), 1)
        if not data:
            return None
        return data.decode("utf-8", errors="replace")

    def poll(self, timeout: float) -> str | None:
        """Wait up to ``timeout`` seconds for one key; ``None`` if nothing arrived."""

        ready, _, _ = select.select([self.stream], [], [], timeout)
        if not ready:
            return None
        return self._read_char()

    def read_key(self) -> str | None:
        return self._read_char()

    @contextmanager
    def line_mode(self) -> Iterator[None]:
        """Temporarily restore the original terminal mode for line input."""

        if self._saved_attrs is None:
            yield
            return
        fd = self.stream.fileno()
        termios.tcsetattr(fd, termios.TCSADRAIN, self._saved_attrs)
        try:
            yield
        finally:
            tty.setcbreak(fd)
