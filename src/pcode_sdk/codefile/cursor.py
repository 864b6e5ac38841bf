"""
Byte Cursors
============

Position-tracking read-only views over a byte buffer. Every reader in the
SDK (dictionary parser, procedure table walker, instruction decoder) owns
one of these over the same immutable buffer and advances it independently.

Two directions are supported:

- **ByteCursor** reads forward from a starting position. It is used for
  the segment dictionary, procedure footers and instruction streams.
- **TailCursor** reads from the end of a view and shrinks it. Codefiles
  store the procedure pointer table and the native relocation tables at
  the tail of a region, so these are consumed last-byte-first.

All multi-byte values are little-endian. Any access outside the buffer
raises TruncatedError carrying the offending offset.
"""

import struct
from typing import Optional, Tuple

from pcode_sdk.errors import TruncatedError


def decode_text(raw: bytes) -> str:
    """
    Decode a fixed-width name or string literal as trimmed ASCII.

    Bytes outside the ASCII range are shown as ``\\xNN`` escapes so a
    damaged name never stops a listing.
    """
    try:
        text = raw.decode("ascii")
    except UnicodeDecodeError:
        text = "".join(
            chr(b) if b < 0x80 else f"\\x{b:02X}" for b in raw
        )
    return text.strip()


class ByteCursor:
    """
    Forward reader over a byte buffer.

    Attributes:
        data: The underlying buffer (never modified)
        position: Offset of the next byte to be read

    Example:
        >>> cur = ByteCursor(bytes([0x34, 0x12, 0x07]))
        >>> hex(cur.read_u16())
        '0x1234'
        >>> cur.read_u8(), cur.position
        (7, 3)
    """

    def __init__(self, data: bytes, position: int = 0):
        self.data = data
        self.position = position

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return max(0, len(self.data) - self.position)

    def _take(self, count: int) -> int:
        """Reserve count bytes and return the offset they start at."""
        start = self.position
        if start < 0 or start + count > len(self.data):
            raise TruncatedError(start, count, len(self.data))
        self.position = start + count
        return start

    def read_u8(self) -> int:
        start = self._take(1)
        return self.data[start]

    def read_i8(self) -> int:
        start = self._take(1)
        return struct.unpack_from("<b", self.data, start)[0]

    def read_u16(self) -> int:
        start = self._take(2)
        return struct.unpack_from("<H", self.data, start)[0]

    def read_i16(self) -> int:
        start = self._take(2)
        return struct.unpack_from("<h", self.data, start)[0]

    def read_bytes(self, count: int) -> bytes:
        start = self._take(count)
        return bytes(self.data[start:start + count])

    def read_u16_array(self, count: int) -> Tuple[int, ...]:
        start = self._take(count * 2)
        return struct.unpack_from(f"<{count}H", self.data, start)

    def read_i16_array(self, count: int) -> Tuple[int, ...]:
        start = self._take(count * 2)
        return struct.unpack_from(f"<{count}h", self.data, start)

    def read_string(self, length: int) -> str:
        """Read a fixed-width field and return it as trimmed ASCII text."""
        return decode_text(self.read_bytes(length))

    def align_to_word(self) -> None:
        """Skip one pad byte if the cursor sits on an odd offset."""
        if self.position & 1:
            self.position += 1

    def word_at(self, offset: int) -> int:
        """
        Read an unsigned word at an absolute offset without moving.

        Used for random-access lookups such as jump-table entries.
        """
        if offset < 0 or offset + 2 > len(self.data):
            raise TruncatedError(offset, 2, len(self.data))
        return struct.unpack_from("<H", self.data, offset)[0]


class TailCursor:
    """
    Backward reader that consumes a view from its end.

    Each read takes bytes from just below ``end`` and then lowers ``end``
    past them, so the view shrinks toward offset zero. Values themselves are
    still little-endian: ``read_down_u16`` on ``... 34 12 | end`` gives
    0x1234.

    Attributes:
        data: The underlying buffer (never modified)
        end: Exclusive end of the still-unread view
    """

    def __init__(self, data: bytes, end: Optional[int] = None):
        self.data = data
        self.end = len(data) if end is None else end
        if self.end < 0 or self.end > len(data):
            raise TruncatedError(self.end, 0, len(data), "tail view")

    def _take_down(self, count: int) -> int:
        start = self.end - count
        if start < 0:
            raise TruncatedError(start, count, len(self.data))
        self.end = start
        return start

    def read_down_u8(self) -> int:
        start = self._take_down(1)
        return self.data[start]

    def read_down_u16(self) -> int:
        start = self._take_down(2)
        return struct.unpack_from("<H", self.data, start)[0]

    def read_down_u16_array(self, count: int) -> Tuple[int, ...]:
        """
        Take count words from the tail.

        The words are returned in ascending address order, the order they
        are laid out in memory.
        """
        start = self._take_down(count * 2)
        return struct.unpack_from(f"<{count}H", self.data, start)
