"""
Masked password entry.

Reads a password from the terminal one key at a time, echoing ``*`` for each
character and erasing it again on backspace. Keys that do not produce a
character (arrows, function keys, Home) are ignored. When stdin is not a
terminal, getpass is used instead.
"""

from __future__ import annotations

import codecs
import getpass
import locale
import os
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TextIO

MASK_CHAR = "*"
ERASE_SEQUENCE = "\b \b"

_ENTER_KEYS = {"\r", "\n", "\x04"}  # Enter, or Ctrl-D at end of input
_BACKSPACE_KEYS = {"\x08", "\x7f"}
_INTERRUPT_KEY = "\x03"

# Seconds to wait for the rest of an escape sequence
_ESCAPE_TIMEOUT = 0.05


def collect_masked(read_key: Callable[[], str], echo: Callable[[str], None]) -> str:
    """
    Collect a password from a stream of keys.

    Args:
        read_key: Returns the next key. Single characters are input;
            longer strings stand for keys without a character.
        echo: Writes feedback to the terminal.

    Returns:
        The password typed, without the terminating Enter.

    Raises:
        KeyboardInterrupt: If Ctrl-C is pressed.
    """
    chars: list[str] = []
    while True:
        key = read_key()
        if key in _ENTER_KEYS:
            break
        if key == _INTERRUPT_KEY:
            raise KeyboardInterrupt
        if key in _BACKSPACE_KEYS:
            if chars:
                chars.pop()
                echo(ERASE_SEQUENCE)
            continue
        if len(key) != 1 or not key.isprintable():
            continue
        chars.append(key)
        echo(MASK_CHAR)
    return "".join(chars)


def read_password(prompt: str, stream: TextIO | None = None) -> str:
    """
    Prompt for a password with masked echo.

    Args:
        prompt: Text shown before the input.
        stream: Where the prompt and mask are written. Defaults to stderr.

    Returns:
        The password entered.
    """
    stream = stream or sys.stderr

    if not sys.stdin.isatty():
        return getpass.getpass(prompt, stream=stream)

    stream.write(prompt)
    stream.flush()

    def echo(text: str) -> None:
        stream.write(text)
        stream.flush()

    try:
        with _terminal_keys() as read_key:
            password = collect_masked(read_key, echo)
    finally:
        stream.write("\n")
        stream.flush()

    return password


@contextmanager
def _terminal_keys() -> Generator[Callable[[], str], None, None]:
    """Put the terminal in raw mode and yield a key reader."""
    if os.name == "nt":
        import msvcrt

        def read_windows_key() -> str:
            key = msvcrt.getwch()
            if key in ("\x00", "\xe0"):
                # Function and cursor keys arrive as a prefix plus a scan code
                return key + msvcrt.getwch()
            return key

        yield read_windows_key
        return

    import termios
    import tty

    fd = sys.stdin.fileno()
    old_attrs = termios.tcgetattr(fd)
    decoder = codecs.getincrementaldecoder(
        sys.stdin.encoding or locale.getpreferredencoding(False)
    )(errors="replace")

    def read_posix_key() -> str:
        key = _read_char(fd, decoder)
        if key == "\x1b":
            return key + _read_escape_tail(fd, decoder)
        return key

    tty.setraw(fd)
    try:
        yield read_posix_key
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_attrs)


def _read_char(fd: int, decoder: codecs.IncrementalDecoder) -> str:
    """Read one decoded character from a raw terminal. EOF reads as Ctrl-D."""
    while True:
        data = os.read(fd, 1)
        if not data:
            return "\x04"
        text = decoder.decode(data)
        if text:
            return text


def _read_escape_tail(fd: int, decoder: codecs.IncrementalDecoder) -> str:
    """Consume the rest of an ANSI escape sequence, if one follows."""
    import select

    tail = ""
    while select.select([fd], [], [], _ESCAPE_TIMEOUT)[0]:
        char = _read_char(fd, decoder)
        tail += char
        if len(tail) > 1 and "\x40" <= char <= "\x7e":
            break
        if len(tail) == 1 and char not in "[O":
            break
    return tail
