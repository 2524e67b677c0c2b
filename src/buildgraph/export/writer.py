"""Streaming JSON token writer.

Builds a document step by step, as if typing it by hand. The writer keeps
track of indentation only; it does not check that calls are balanced or
correctly ordered. Mismatched start/end calls produce malformed text, not
an error.

Every call that adds an element takes ``continued``: True when the element
is not the first one in its enclosing object or array, so a separating
comma is written first. The caller knows its position; the writer never
infers it.

Example:
    {
      "foo": {
        "bar": "5",
        "baz": "zzz"
      }
    }

is produced by:
    w.start_object(False)
    w.start_object_property("foo", False)
    w.numerical_string_property("bar", 5, False)
    w.string_property("baz", "zzz", True)
    w.end_object()
    w.end_object()
"""

from __future__ import annotations

from typing import TextIO

# Every code point below U+0020 must be escaped for the output to be JSON.
# Lone surrogates cannot be encoded as UTF-8, so they are escaped as well.
_ESCAPE_TABLE: dict[int, str] = {code: f"\\u{code:04x}" for code in range(0x20)}
_ESCAPE_TABLE.update({code: f"\\u{code:04x}" for code in range(0xD800, 0xE000)})
_ESCAPE_TABLE.update(
    {
        ord("\\"): "\\\\",
        ord('"'): '\\"',
        ord("\b"): "\\b",
        ord("\f"): "\\f",
        ord("\n"): "\\n",
        ord("\r"): "\\r",
        ord("\t"): "\\t",
    }
)


def escape_json(s: str) -> str:
    """Escape a string for use between JSON double quotes.

    Non-ASCII characters pass through unchanged; the document is UTF-8.
    Surrogate code points (U+D800..U+DFFF) are written as \\uXXXX escapes
    so the document always encodes.
    """
    return s.translate(_ESCAPE_TABLE)


class JsonStreamWriter:
    """Writes JSON tokens to a text stream with fixed-width indentation."""

    def __init__(self, stream: TextIO, *, indent: int = 2) -> None:
        self._stream = stream
        self._indent = indent
        self._depth = 0

    @property
    def depth(self) -> int:
        """Current nesting depth (0 outside any container)."""
        return self._depth

    def _begin(self, continued: bool) -> None:
        if continued:
            self._stream.write(",\n")
        self._stream.write(" " * (self._indent * self._depth))

    def _close(self, token: str) -> None:
        if self._depth > 0:
            self._depth -= 1
        self._stream.write("\n")
        self._stream.write(" " * (self._indent * self._depth))
        self._stream.write(token)

    def start_object(self, continued: bool) -> None:
        self._begin(continued)
        self._stream.write("{\n")
        self._depth += 1

    def end_object(self) -> None:
        self._close("}")

    def start_array(self, continued: bool) -> None:
        self._begin(continued)
        self._stream.write("[\n")
        self._depth += 1

    def end_array(self) -> None:
        self._close("]")

    def start_object_property(self, name: str, continued: bool) -> None:
        """Start an object which is a property of another object."""
        self._begin(continued)
        self._stream.write(f'"{escape_json(name)}": {{\n')
        self._depth += 1

    def start_array_property(self, name: str, continued: bool) -> None:
        self._begin(continued)
        self._stream.write(f'"{escape_json(name)}": [\n')
        self._depth += 1

    def string_property(self, name: str, value: str, continued: bool) -> None:
        self._begin(continued)
        self._stream.write(f'"{escape_json(name)}": "{escape_json(value)}"')

    def bool_property(self, name: str, value: bool, continued: bool) -> None:
        self._begin(continued)
        self._stream.write(f'"{escape_json(name)}": {"true" if value else "false"}')

    def numerical_string_property(self, name: str, value: int, continued: bool) -> None:
        """Write an integer inside a string, e.g. ``"$ref": "4"``."""
        self._begin(continued)
        self._stream.write(f'"{escape_json(name)}": "{value:d}"')

    def string(self, value: str, continued: bool) -> None:
        """Write a bare string element of an array."""
        self._begin(continued)
        self._stream.write(f'"{escape_json(value)}"')
