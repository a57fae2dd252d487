"""
Secure prompts.

Confirmation and hidden-input prompts that always leave the terminal in the
mode they found it, including when the process is interrupted mid-prompt.
"""

import logging
import os
import re
import signal
import sys
import termios
from types import FrameType, TracebackType
from typing import Any, TextIO

logger = logging.getLogger(__name__)

AFFIRMATIVE = re.compile(r"^[yY]")

# SIGINT already surfaces as KeyboardInterrupt and unwinds through __exit__
GUARDED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)

LFLAG = 3
CC = 6


def _tty_fileno(stream: TextIO) -> int | None:
    try:
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None
    return fd if os.isatty(fd) else None


class TerminalMode:
    """
    Context manager that switches terminal echo/canonical mode.

    The original termios state is saved and signal handlers that restore it
    are installed before the mode changes; leaving the block restores both.
    On a stream that is not a terminal it does nothing.
    """

    def __init__(self, stream: TextIO, echo: bool = False, canonical: bool = True) -> None:
        self.stream = stream
        self.echo = echo
        self.canonical = canonical
        self.fd: int | None = None
        self._saved: list[Any] | None = None
        self._previous: dict[int, Any] = {}

    @property
    def active(self) -> bool:
        """Whether a terminal mode change is in effect."""
        return self._saved is not None

    def __enter__(self) -> "TerminalMode":
        fd = _tty_fileno(self.stream)
        if fd is None:
            return self

        self.fd = fd
        self._saved = termios.tcgetattr(fd)
        self._install_handlers()

        mode = termios.tcgetattr(fd)
        if not self.echo:
            mode[LFLAG] &= ~termios.ECHO
        if not self.canonical:
            mode[LFLAG] &= ~termios.ICANON
            mode[CC][termios.VMIN] = 1
            mode[CC][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSAFLUSH, mode)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            self.restore()
        finally:
            self._remove_handlers()
            self._saved = None

    def restore(self) -> None:
        """Put the saved terminal state back."""
        if self._saved is not None and self.fd is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        self.restore()
        raise SystemExit(128 + signum)

    def _install_handlers(self) -> None:
        for sig in GUARDED_SIGNALS:
            try:
                self._previous[sig] = signal.signal(sig, self._on_signal)
            except ValueError:
                # Not the main thread; __exit__ still restores
                logger.debug(f"Cannot install handler for signal {sig}")

    def _remove_handlers(self) -> None:
        for sig, previous in self._previous.items():
            signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()

    def read_key(self) -> str:
        """Read a single keypress (or the first character of a line)."""
        if self.active and self.fd is not None:
            return os.read(self.fd, 1).decode("utf-8", "replace")
        return self.stream.readline()[:1]

    def read_line(self) -> str:
        """Read one line without its terminator."""
        line = self.stream.readline()
        return line.rstrip("\r\n")


def confirm(prompt: str, stdin: TextIO | None = None, stderr: TextIO | None = None) -> bool:
    """
    Ask a yes/no question answered by a single keypress.

    Returns:
        True only if the answer starts with ``y`` or ``Y``.
    """
    stdin = stdin or sys.stdin
    stderr = stderr or sys.stderr

    stderr.write(f"{prompt} [y/N] ")
    stderr.flush()
    with TerminalMode(stdin, echo=False, canonical=False) as mode:
        answer = mode.read_key()
    stderr.write("\n")
    return bool(AFFIRMATIVE.match(answer))


def prompt_hidden(prompt: str, stdin: TextIO | None = None, stderr: TextIO | None = None) -> str:
    """
    Read a line with terminal echo disabled.

    Returns:
        The line without its terminator.
    """
    stdin = stdin or sys.stdin
    stderr = stderr or sys.stderr

    stderr.write(f"{prompt}: ")
    stderr.flush()
    with TerminalMode(stdin, echo=False) as mode:
        line = mode.read_line()
    stderr.write("\n")
    return line


def prompt_line(prompt: str, stdin: TextIO | None = None, stderr: TextIO | None = None) -> str:
    """Read a line with echo left on."""
    stdin = stdin or sys.stdin
    stderr = stderr or sys.stderr

    stderr.write(f"{prompt}: ")
    stderr.flush()
    return stdin.readline().rstrip("\r\n")
