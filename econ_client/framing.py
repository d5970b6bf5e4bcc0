"""Incremental line framing for the external console byte stream."""

from __future__ import annotations

import codecs
from collections import deque


class LineFramer:
    """Reassemble newline-delimited text lines from arbitrary byte chunks.

    Each fed chunk is decoded, split on ``\\n`` and joined with the
    unfinished tail of the previous chunk. Complete lines are queued in
    arrival order; the trailing unterminated fragment is carried until a
    later chunk supplies its terminator.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._lines: deque[str] = deque()
        self._carry = ""

    @property
    def carry(self) -> str:
        """Unterminated fragment held back from the last chunk."""
        return self._carry

    @property
    def pending(self) -> int:
        """Number of complete lines waiting in the queue."""
        return len(self._lines)

    def feed(self, data: bytes | bytearray | memoryview) -> int:
        """Frame one received chunk.

        Returns:
            Number of complete lines appended to the queue
        """
        if not data:
            return 0

        text = self._decoder.decode(data).replace("\0", "")
        fragments = text.split("\n")
        fragments[0] = self._carry + fragments[0]
        self._carry = fragments.pop()

        self._lines.extend(fragments)
        return len(fragments)

    def pop_line(self) -> str | None:
        """Remove and return the oldest complete line, if any."""
        if not self._lines:
            return None
        return self._lines.popleft()

    def clear_lines(self) -> None:
        """Discard every queued line. The carry fragment is kept."""
        self._lines.clear()
