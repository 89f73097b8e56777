"""Line framing for streamed response bodies.

The transport hands over bytes in whatever pieces the network produced.
:class:`FrameDecoder` turns those pieces into complete text lines,
holding back any trailing fragment until the rest of it arrives.
"""

from __future__ import annotations

import codecs
import logging

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
LINE_TERMINATOR = "\n"


class FrameDecoder:
    """Splits a chunked byte stream into newline-terminated lines.

    Decoding is incremental, so a multi-byte character split across two
    chunks is reassembled before line splitting. One decoder serves one
    response; its buffer is meaningless once that response ends.

    Args:
        encoding: Text encoding declared by the response. Missing or
            unknown encodings fall back to UTF-8.
    """

    def __init__(self, encoding: str | None = None) -> None:
        self.encoding = encoding or DEFAULT_ENCODING
        try:
            factory = codecs.getincrementaldecoder(self.encoding)
        except LookupError:
            logger.warning(f"Unknown encoding {self.encoding!r}, decoding as UTF-8")
            self.encoding = DEFAULT_ENCODING
            factory = codecs.getincrementaldecoder(self.encoding)
        self._decoder = factory(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last line terminator."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one chunk and return the lines it completed, in order."""
        self._buffer += self._decoder.decode(chunk)
        if LINE_TERMINATOR not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split(LINE_TERMINATOR)
        return lines

    def finalize(self) -> str:
        """End the stream and return the discarded trailing partial.

        A line still unterminated when the transport ends is truncated
        input; it is dropped rather than interpreted.
        """
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        self._decoder.reset()
        return leftover
