"""Request content sources.

Object writes accept raw bytes, a slice of a larger buffer, or a readable
stream with a known length. Every source reports its length up front
because Atmos needs ``Content-Length`` on writes.
"""

from collections.abc import Iterator
from typing import BinaryIO

from atmosclient.errors import ValidationError

DEFAULT_CHUNK_SIZE = 64 * 1024


class ContentSource:
    """Base class of request bodies."""

    length: int = 0

    def iter_chunks(self) -> Iterator[bytes]:
        raise NotImplementedError

    def read_all(self) -> bytes:
        """Return the whole content in memory."""
        return b"".join(self.iter_chunks())

    def body(self) -> bytes | Iterator[bytes]:
        """The value handed to the HTTP client as request content."""
        return self.iter_chunks()


class BytesContent(ContentSource):
    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self.length = len(self._data)

    def iter_chunks(self) -> Iterator[bytes]:
        if self._data:
            yield self._data

    def read_all(self) -> bytes:
        return self._data

    def body(self) -> bytes:
        return self._data


class BufferSegment(ContentSource):
    """``size`` bytes of ``buffer`` starting at ``offset``.

    Raises:
        ValidationError: If the segment falls outside the buffer.
    """

    def __init__(self, buffer: bytes | bytearray | memoryview, offset: int, size: int) -> None:
        if offset < 0 or size < 0 or offset + size > len(buffer):
            raise ValidationError(
                f"Segment {offset}+{size} is outside a buffer of {len(buffer)} bytes"
            )
        self._view = memoryview(buffer)[offset:offset + size]
        self.length = size

    def iter_chunks(self) -> Iterator[bytes]:
        if self.length:
            yield self._view.tobytes()

    def read_all(self) -> bytes:
        return self._view.tobytes()

    def body(self) -> bytes:
        return self.read_all()


class StreamContent(ContentSource):
    """Exactly ``length`` bytes read from a binary stream.

    The stream is consumed once; it is not closed here.
    """

    def __init__(self, stream: BinaryIO, length: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if length < 0:
            raise ValidationError("stream length may not be negative")
        self._stream = stream
        self._chunk_size = chunk_size
        self.length = length

    def iter_chunks(self) -> Iterator[bytes]:
        remaining = self.length
        while remaining > 0:
            chunk = self._stream.read(min(self._chunk_size, remaining))
            if not chunk:
                raise ValidationError(
                    f"Stream ended {remaining} bytes before the declared length {self.length}"
                )
            remaining -= len(chunk)
            yield chunk


def as_content_source(content: object) -> ContentSource | None:
    """Wrap plain values into a ContentSource.

    ``str`` is sent as UTF-8; None means no body.

    Raises:
        ValidationError: For unsupported content types.
    """
    if content is None or isinstance(content, ContentSource):
        return content
    if isinstance(content, str):
        return BytesContent(content.encode("utf-8"))
    if isinstance(content, (bytes, bytearray, memoryview)):
        return BytesContent(content)
    raise ValidationError(f"Unsupported content type: {type(content).__name__}")
