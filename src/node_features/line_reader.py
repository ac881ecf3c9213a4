#!/usr/bin/env python3
"""
Node Features - Stream Line Reader

Chunked line iterator over a binary stream. Bytes are copied from a
fixed-size chunk buffer into a growable line buffer until a newline, an
embedded NUL byte or the end of the stream is seen. Each line comes back
with surrounding whitespace stripped.
"""

import errno
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

logger = logging.getLogger(__name__)

# Same set as C isspace() in the "C" locale
WHITESPACE = b" \t\n\v\f\r"
WHITESPACE_CHARS = WHITESPACE.decode("ascii")


class StreamLineReader:
    """
    Iterate the trimmed lines of a binary stream.

    Iteration stops at end-of-stream, after a read error or when the line
    buffer cannot grow. Check ``err_code`` afterwards to tell the three
    apart: 0 for a normal end, ``errno.EIO`` for a read error and
    ``errno.ENOMEM`` for buffer exhaustion.

    Example:
        with StreamLineReader.open("/proc/cpuinfo") as reader:
            for line in reader:
                ...
            if reader.err_code:
                ...
    """

    MIN_CHUNK_SIZE = 128
    INITIAL_CAPACITY = 128

    def __init__(
        self,
        stream: BinaryIO,
        chunk_size: int = MIN_CHUNK_SIZE,
        max_capacity: Optional[int] = None,
        name: Optional[str] = None,
    ):
        self.name = name or getattr(stream, "name", "<stream>")
        self.err_code = 0
        self.error: Optional[BaseException] = None

        self._stream: Optional[BinaryIO] = stream
        self._chunk_size = max(chunk_size, self.MIN_CHUNK_SIZE)
        self._max_capacity = max_capacity
        self._chunk = b""
        self._pos = 0
        self._line = bytearray()
        self._capacity = 0
        self._exhausted = False

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        chunk_size: int = MIN_CHUNK_SIZE,
        max_capacity: Optional[int] = None,
    ) -> "StreamLineReader":
        """Open a file for line reading; OSError propagates to the caller."""
        stream = open(path, "rb")
        return cls(stream, chunk_size=chunk_size, max_capacity=max_capacity, name=str(path))

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def capacity(self) -> int:
        """Current line buffer capacity in bytes."""
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._stream is None

    def __iter__(self):
        return self

    def __next__(self) -> str:
        line = self.readline()
        if line is None:
            raise StopIteration
        return line

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        """Release the stream and buffers."""
        stream, self._stream = self._stream, None
        self._chunk = b""
        self._line = bytearray()
        self._capacity = 0
        self._exhausted = True
        if stream is not None:
            stream.close()

    def readline(self) -> Optional[str]:
        """Return the next trimmed line, or None when there are no more."""
        if self._stream is None or self._exhausted:
            return None

        del self._line[:]
        while True:
            if self._pos >= len(self._chunk):
                if not self._fill():
                    self._exhausted = True
                    if self.err_code or not self._line:
                        return None
                    # Last line had no terminator
                    return self._finish()
                continue

            end = self._next_terminator()
            stop = end if end >= 0 else len(self._chunk)
            if not self._append(self._chunk[self._pos:stop]):
                self._exhausted = True
                return None
            if end >= 0:
                self._pos = end + 1
                return self._finish()
            self._pos = stop

    def _fill(self) -> bool:
        """Read the next chunk; False at end-of-stream or on error."""
        try:
            data = self._stream.read(self._chunk_size)
        except OSError as e:
            logger.warning(f"Read error on {self.name}: {e}")
            self.err_code = errno.EIO
            self.error = e
            return False

        if not data:
            return False
        self._chunk = data
        self._pos = 0
        return True

    def _next_terminator(self) -> int:
        hits = [
            i for i in (
                self._chunk.find(b"\n", self._pos),
                self._chunk.find(b"\0", self._pos),
            )
            if i >= 0
        ]
        return min(hits) if hits else -1

    def _append(self, piece: bytes) -> bool:
        # One byte is reserved for the terminator slot
        needed = len(self._line) + len(piece) + 1
        while self._capacity < needed:
            new_capacity = 2 * self._capacity if self._capacity else self.INITIAL_CAPACITY
            if self._max_capacity is not None and new_capacity > self._max_capacity:
                return self._out_of_memory(
                    MemoryError(f"line longer than {self._max_capacity} bytes")
                )
            self._capacity = new_capacity

        try:
            self._line.extend(piece)
        except MemoryError as e:
            return self._out_of_memory(e)
        return True

    def _out_of_memory(self, error: MemoryError) -> bool:
        logger.warning(f"Line buffer exhausted on {self.name} at {self._capacity} bytes")
        self.err_code = errno.ENOMEM
        self.error = error
        return False

    def _finish(self) -> str:
        return bytes(self._line).strip(WHITESPACE).decode("utf-8", errors="replace")
