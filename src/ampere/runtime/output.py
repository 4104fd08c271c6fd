"""Line buffering for process output that arrives in arbitrary chunks."""

import codecs


class LineDecoder:
    """Decodes a byte stream incrementally and hands out complete lines.

    Multi-byte characters split across chunks are held back by the
    incremental decoder until the rest of the sequence arrives.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, data: bytes) -> list[str]:
        """Add a chunk and return the lines it completed."""
        self._pending += self._decoder.decode(data)
        end = self._pending.rfind("\n")
        if end < 0:
            return []
        complete, self._pending = self._pending[:end], self._pending[end + 1 :]
        return [line.rstrip("\r") for line in complete.split("\n")]

    def flush(self) -> str | None:
        """Return any text not terminated by a newline, or None."""
        self._pending += self._decoder.decode(b"", final=True)
        rest, self._pending = self._pending, ""
        return rest or None

    @property
    def pending(self) -> str:
        """Buffered text waiting for a newline."""
        return self._pending
