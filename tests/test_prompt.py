"""Tests for masked password entry."""

import unittest
from contextlib import contextmanager
from io import StringIO
from unittest.mock import patch

from jobimporter.prompt import ERASE_SEQUENCE, collect_masked, read_password


def keys(*sequence: str):
    """Return a key reader that plays back the given keys."""
    iterator = iter(sequence)
    return lambda: next(iterator)


class TestCollectMasked(unittest.TestCase):
    """Tests for collect_masked."""

    def setUp(self):
        """Capture echoed output."""
        self.echoed = []

    def _collect(self, *sequence: str) -> str:
        return collect_masked(keys(*sequence), self.echoed.append)

    def test_plain_password(self):
        """Test each character is masked."""
        password = self._collect("p", "w", "\r")

        self.assertEqual(password, "pw")
        self.assertEqual("".join(self.echoed), "**")

    def test_backspace(self):
        """Test backspace removes the last character and its mask."""
        password = self._collect("a", "b", "\x7f", "c", "\n")

        self.assertEqual(password, "ac")
        self.assertEqual(self.echoed, ["*", "*", ERASE_SEQUENCE, "*"])

    def test_backspace_on_empty_input(self):
        """Test backspace with nothing typed."""
        password = self._collect("\x08", "\x08", "x", "\r")

        self.assertEqual(password, "x")
        self.assertEqual(self.echoed, ["*"])

    def test_keys_without_characters_ignored(self):
        """Test arrows, function keys and control keys are ignored."""
        password = self._collect("\x1b[A", "\x00;", "\xe0H", "\x01", "\x1b", "k", "\r")

        self.assertEqual(password, "k")
        self.assertEqual(self.echoed, ["*"])

    def test_unicode_characters(self):
        """Test non-ASCII characters are accepted."""
        self.assertEqual(self._collect("ä", "ß", "\r"), "äß")

    def test_ctrl_d_ends_input(self):
        """Test end of input finishes the password."""
        self.assertEqual(self._collect("a", "\x04"), "a")

    def test_ctrl_c_interrupts(self):
        """Test Ctrl-C raises KeyboardInterrupt."""
        with self.assertRaises(KeyboardInterrupt):
            self._collect("a", "\x03")


class TestReadPassword(unittest.TestCase):
    """Tests for read_password."""

    @patch("jobimporter.prompt.getpass.getpass", return_value="secret")
    @patch("jobimporter.prompt.sys.stdin")
    def test_not_a_terminal(self, mock_stdin, mock_getpass):
        """Test getpass is used when stdin is not a terminal."""
        mock_stdin.isatty.return_value = False
        stream = StringIO()

        password = read_password("Password: ", stream=stream)

        self.assertEqual(password, "secret")
        mock_getpass.assert_called_once_with("Password: ", stream=stream)

    @patch("jobimporter.prompt.sys.stdin")
    def test_terminal(self, mock_stdin):
        """Test masked entry on a terminal."""
        mock_stdin.isatty.return_value = True
        stream = StringIO()

        @contextmanager
        def fake_keys():
            yield keys("h", "i", "\r")

        with patch("jobimporter.prompt._terminal_keys", fake_keys):
            password = read_password("Password: ", stream=stream)

        self.assertEqual(password, "hi")
        self.assertEqual(stream.getvalue(), "Password: **\n")

    @patch("jobimporter.prompt.sys.stdin")
    def test_terminal_interrupt_ends_line(self, mock_stdin):
        """Test the prompt line is finished when Ctrl-C is pressed."""
        mock_stdin.isatty.return_value = True
        stream = StringIO()

        @contextmanager
        def fake_keys():
            yield keys("\x03")

        with patch("jobimporter.prompt._terminal_keys", fake_keys):
            with self.assertRaises(KeyboardInterrupt):
                read_password("Password: ", stream=stream)

        self.assertEqual(stream.getvalue(), "Password: \n")


if __name__ == "__main__":
    unittest.main()
