"""Incremental line decoding for event-stream response bodies."""

import codecs
from typing import Iterable, Iterator, List

from ai_solver.utils.logger import logger

DATA_PREFIX = "data: "


class LineDecoder:
    """
    Turn arbitrarily split byte chunks into complete text lines.

    Bytes are decoded as UTF-8 incrementally, so a multibyte character split
    across two chunks is only emitted once both halves have arrived. A line is
    emitted only after its newline terminator; the unterminated tail stays
    buffered for the next feed().
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        """
        Decode a chunk and return the lines it completed.

        Args:
            chunk: Raw bytes from the response body

        Returns:
            Complete lines without their terminators (a trailing "\\r" is stripped)
        """
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []

        *lines, self._buffer = self._buffer.split("\n")
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def reset(self) -> None:
        """Discard buffered bytes and text."""
        if self._buffer:
            logger.debug(f"Discarding {len(self._buffer)} chars of unterminated stream data")
        self._decoder.reset()
        self._buffer = ""


def iter_data_lines(chunks: Iterable[bytes], decoder: LineDecoder | None = None) -> Iterator[str]:
    """
    Lazily yield the "data: " lines of an event stream.

    Consumption suspends until the next chunk is available. Lines without the
    prefix (comments, event names, blank separators) are dropped. Any
    unterminated tail left when the source is exhausted is discarded.

    Args:
        chunks: Byte chunks in arrival order
        decoder: Optional decoder to use, e.g. to inspect buffered state

    Yields:
        Lines starting with DATA_PREFIX, prefix included
    """
    decoder = decoder or LineDecoder()
    try:
        for chunk in chunks:
            for line in decoder.feed(chunk):
                if line.startswith(DATA_PREFIX):
                    yield line
    finally:
        decoder.reset()
