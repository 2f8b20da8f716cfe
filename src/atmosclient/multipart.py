"""multipart/byteranges response parsing.

A multi-extent read returns a body shaped like::

    \\n
    --BOUNDARY\\n
    Content-Type: text/plain\\n
    Content-Range: bytes 27-28/30\\n
    \\n
    ag\\n
    --BOUNDARY--\\n

Lines may end in LF or CRLF. Part data is taken as raw bytes, exactly
``end - start + 1`` of them.
"""

import logging
import re
from dataclasses import dataclass

from atmosclient.errors import ParseError
from atmosclient.models import Extent

logger = logging.getLogger(__name__)

_CONTENT_TYPE_RE = re.compile(r"^Content-Type: (.+)$")
_CONTENT_RANGE_RE = re.compile(r"^Content-Range: bytes (\d+)-(\d+)/(\d+)$")
_BOUNDARY_RE = re.compile(r';\s*boundary="?([^\s";]+)"?')


@dataclass
class MultipartPart:
    content_type: str
    extent: Extent
    data: bytes


class MultipartEntity(list):
    """The ordered parts of a multipart/byteranges body."""

    def aggregate_bytes(self) -> bytes:
        """Concatenate the data of every part in order."""
        return b"".join(part.data for part in self)


class _Reader:
    """Line and byte reader over an in-memory body."""

    def __init__(self, body: bytes) -> None:
        self._body = body
        self._pos = 0

    def readline(self) -> str | None:
        """Return the next line without its terminator, or None at the end."""
        if self._pos >= len(self._body):
            return None
        end = self._body.find(b"\n", self._pos)
        if end == -1:
            line = self._body[self._pos:]
            self._pos = len(self._body)
        else:
            line = self._body[self._pos:end]
            self._pos = end + 1
        if line.endswith(b"\r"):
            line = line[:-1]
        return line.decode("utf-8", errors="replace")

    def read(self, size: int) -> bytes:
        data = self._body[self._pos:self._pos + size]
        self._pos += len(data)
        return data


def boundary_from_content_type(content_type: str | None) -> str:
    """Extract the boundary parameter of a multipart Content-Type.

    Raises:
        ParseError: If the header has no boundary.
    """
    match = _BOUNDARY_RE.search(content_type or "")
    if match is None or not match.group(1):
        raise ParseError(f"No boundary in content type: {content_type!r}")
    return match.group(1)


def parse_multipart(body: bytes, boundary: str) -> MultipartEntity:
    """Split a multipart/byteranges body into parts.

    Args:
        body: The full response body.
        boundary: The boundary token; a leading ``--`` is ignored.

    Returns:
        The parts in body order.

    Raises:
        ParseError: If the body is empty, a boundary line is malformed, a part
            lacks Content-Type or Content-Range, a range is inconsistent, or
            the body ends early.
    """
    if not body:
        raise ParseError("Empty multipart body")
    if boundary.startswith("--"):
        boundary = boundary[2:]
    delimiter = "--" + boundary
    terminator = delimiter + "--"

    reader = _Reader(body)
    parts = MultipartEntity()
    while True:
        # Each part is preceded by an empty line, then the delimiter
        line = reader.readline()
        if line != "":
            raise ParseError("Parse error: expected EOL before boundary", body=body)
        line = reader.readline()
        if line == terminator:
            break
        if line != delimiter:
            raise ParseError(
                f"Parse error: expected [{delimiter}], instead got [{line}]", body=body
            )

        content_type = None
        start = end = total = -1
        while True:
            line = reader.readline()
            if line is None:
                raise ParseError("Unexpected end of multipart headers", body=body)
            if line == "":
                break
            match = _CONTENT_TYPE_RE.match(line)
            if match:
                content_type = match.group(1)
                continue
            match = _CONTENT_RANGE_RE.match(line)
            if match:
                start, end, total = (int(g) for g in match.groups())
                continue
            raise ParseError(f"Unrecognized header line: {line}", body=body)

        if content_type is None:
            raise ParseError("Parse error: No content-type specified in part", body=body)
        if start == -1:
            raise ParseError("Parse error: No content-range specified in part", body=body)
        if end < start or end >= total:
            raise ParseError(f"Invalid content range {start}-{end}/{total}", body=body)

        size = end - start + 1
        data = reader.read(size)
        if len(data) != size:
            raise ParseError(
                f"Part truncated: expected {size} bytes, got {len(data)}", body=body
            )
        parts.append(MultipartPart(content_type, Extent(start, size), data))

    logger.debug("Parsed %d multipart parts", len(parts))
    return parts
