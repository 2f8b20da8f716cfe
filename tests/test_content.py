"""Tests for request content sources."""

import io

import pytest

from atmosclient.content import (
    BufferSegment,
    BytesContent,
    StreamContent,
    as_content_source,
)
from atmosclient.errors import ValidationError


class TestContentSources:
    """Tests for BytesContent, BufferSegment and StreamContent."""

    def test_bytes(self):
        """Bytes are sent as-is with their length."""
        source = BytesContent(b"hello")
        assert source.length == 5
        assert source.body() == b"hello"

    def test_buffer_segment(self):
        """A segment covers exactly offset..offset+size of the buffer."""
        source = BufferSegment(b"0123456789", 2, 4)
        assert source.length == 4
        assert source.read_all() == b"2345"

    @pytest.mark.parametrize("offset,size", [(-1, 2), (8, 3), (0, -1)])
    def test_buffer_segment_out_of_bounds(self, offset, size):
        """Segments outside the buffer are rejected."""
        with pytest.raises(ValidationError):
            BufferSegment(b"0123456789", offset, size)

    def test_stream_chunks(self):
        """Streams are read in chunks up to the declared length."""
        source = StreamContent(io.BytesIO(b"abcdefghij"), 7, chunk_size=3)
        assert list(source.iter_chunks()) == [b"abc", b"def", b"g"]

    def test_stream_too_short(self):
        """A stream that ends before its declared length is an error."""
        source = StreamContent(io.BytesIO(b"abc"), 10)
        with pytest.raises(ValidationError):
            source.read_all()


class TestAsContentSource:
    """Tests for as_content_source()."""

    def test_none(self):
        """None means no body."""
        assert as_content_source(None) is None

    def test_str_is_utf8(self):
        """Text is encoded as UTF-8."""
        assert as_content_source("é").read_all() == "é".encode("utf-8")

    def test_passthrough(self):
        """Existing sources are returned unchanged."""
        source = BytesContent(b"x")
        assert as_content_source(source) is source

    def test_unsupported(self):
        """Other types are rejected."""
        with pytest.raises(ValidationError):
            as_content_source(42)
