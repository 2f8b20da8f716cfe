"""Tests for Atmos request signing.

Tests cover:
- Header value normalization
- Canonical string layout and the UTF-8 / ISO-8859-1 split
- x-emc header ordering
- HMAC-SHA1 regression vector
- HTTP dates and the server clock offset
- Shareable URL query signing
"""

import base64
import hashlib
import hmac
import urllib.parse
from datetime import datetime, timezone

import pytest

from atmosclient.auth import (
    RequestSigner,
    build_string_to_sign,
    canonical_emc_headers,
    decode_secret,
    http_date,
    normalize_header_value,
    parse_http_date,
    sign,
)
from atmosclient.errors import ValidationError

SECRET = "LJLuryj6zs8ste6Y3jTGQp71xq0="
DATE = "Tue, 01 Jan 2013 00:00:00 GMT"

# HMAC-SHA1 digests computed independently of this package for SECRET.
GET_OBJECTS_SIGNATURE = "OM8SrBvW8oJM2CV+jai/gYomy7E="
SHAREABLE_SIGNATURE = "lrst7/WtnBG1KCOw2XXjtMBLmZg="


def _expected_signature(secret: str, data: bytes) -> str:
    key = base64.b64decode(secret)
    return base64.b64encode(hmac.new(key, data, hashlib.sha1).digest()).decode()


class TestNormalizeHeaderValue:
    """Tests for normalize_header_value()."""

    def test_plain_value_unchanged(self):
        """A value with single spaces is returned as-is."""
        assert normalize_header_value("a b c") == "a b c"

    def test_newlines_removed(self):
        """Newlines are dropped, not replaced by spaces."""
        assert normalize_header_value("line1\nline2") == "line1line2"

    def test_collapses_long_runs(self):
        """Runs of any length collapse to one space."""
        assert normalize_header_value("a     b") == "a b"
        assert normalize_header_value("a   b    c") == "a b c"

    def test_idempotent(self):
        """A second pass changes nothing."""
        once = normalize_header_value("x  \n   y      z")
        assert normalize_header_value(once) == once
        assert "  " not in once

    def test_newline_between_spaces(self):
        """Spaces around a removed newline join into one run."""
        assert normalize_header_value("a \n b") == "a b"


class TestCanonicalString:
    """Tests for build_string_to_sign() and canonical_emc_headers()."""

    def test_layout_without_content_type_and_range(self):
        """Missing Content-Type and Range become empty lines."""
        headers = {"Date": DATE, "x-emc-uid": "u", "x-emc-date": DATE}
        result = build_string_to_sign("GET", "/rest/objects", headers)
        assert result == (
            f"GET\n\n\n{DATE}\n/rest/objects\nx-emc-date:{DATE}\nx-emc-uid:u"
        ).encode()

    def test_content_type_and_range_lines(self):
        """Content-Type and Range fill lines two and three."""
        headers = {
            "Content-Type": "text/plain",
            "Range": "Bytes=0-9",
            "Date": DATE,
            "x-emc-uid": "u",
        }
        result = build_string_to_sign("PUT", "/rest/objects/abc", headers)
        assert result.startswith(f"PUT\ntext/plain\nBytes=0-9\n{DATE}\n".encode())

    def test_resource_lowercased(self):
        """The resource line is lowercased, including the query marker."""
        headers = {"Date": DATE}
        result = build_string_to_sign("GET", "/rest/namespace/Dir/File.TXT?metadata/user", headers)
        assert b"\n/rest/namespace/dir/file.txt?metadata/user\n" in result

    def test_headers_sorted_by_lowercased_name(self):
        """x-emc headers sort by lowercased name regardless of input case."""
        headers = {"X-EMC-Uid": "u", "x-emc-meta": "a=1", "X-Emc-Date": DATE}
        assert canonical_emc_headers(headers) == f"x-emc-date:{DATE}\nx-emc-meta:a=1\nx-emc-uid:u"

    def test_header_block_is_permutation_invariant(self):
        """Insertion order of headers never changes the canonical block."""
        items = [("x-emc-uid", "u"), ("x-emc-meta", "a=1"), ("x-emc-tags", "t"), ("Date", DATE)]
        first = build_string_to_sign("GET", "/rest/objects", dict(items))
        second = build_string_to_sign("GET", "/rest/objects", dict(reversed(items)))
        assert first == second

    def test_non_emc_headers_ignored(self):
        """Only headers starting with x-emc are in the block."""
        headers = {"Date": DATE, "Accept": "*/*", "x-emc-uid": "u"}
        assert canonical_emc_headers(headers) == "x-emc-uid:u"

    def test_values_normalized(self):
        """Header values are normalized in the block."""
        headers = {"x-emc-meta": "name=a   b\n"}
        assert canonical_emc_headers(headers) == "x-emc-meta:name=a b"

    def test_dual_encoding(self):
        """The prefix is UTF-8 and the x-emc block ISO-8859-1."""
        headers = {"Date": DATE, "x-emc-meta": "name=café"}
        result = build_string_to_sign("GET", "/rest/namespace/été", headers)
        prefix = f"GET\n\n\n{DATE}\n/rest/namespace/été\n".encode("utf-8")
        block = "x-emc-meta:name=café".encode("iso-8859-1")
        assert result == prefix + block

    def test_unencodable_header_rejected(self):
        """Header values outside ISO-8859-1 raise ValidationError."""
        with pytest.raises(ValidationError):
            build_string_to_sign("GET", "/rest/objects", {"x-emc-meta": "name=中"})


class TestSign:
    """Tests for sign() and RequestSigner."""

    def test_regression_vector(self):
        """A fixed GET request signs to the HMAC-SHA1 of the documented string."""
        headers = {"Date": DATE, "x-emc-uid": "u", "x-emc-date": DATE}
        data = build_string_to_sign("GET", "/rest/objects", headers)
        expected_input = (
            "GET\n\n\nTue, 01 Jan 2013 00:00:00 GMT\n/rest/objects\n"
            "x-emc-date:Tue, 01 Jan 2013 00:00:00 GMT\nx-emc-uid:u"
        ).encode()
        assert data == expected_input
        assert sign(decode_secret(SECRET), data) == GET_OBJECTS_SIGNATURE
        assert _expected_signature(SECRET, expected_input) == GET_OBJECTS_SIGNATURE

    def test_signer_sets_headers(self):
        """sign_request adds uid, both dates and the signature."""
        signer = RequestSigner("u", SECRET)
        now = datetime(2013, 1, 1, tzinfo=timezone.utc)
        headers = signer.sign_request("GET", "/rest/objects", {}, now=now)
        assert headers["x-emc-uid"] == "u"
        assert headers["Date"] == DATE
        assert headers["x-emc-date"] == DATE
        assert headers["x-emc-signature"] == GET_OBJECTS_SIGNATURE

    def test_signature_changes_with_secret(self):
        """A different secret yields a different signature."""
        now = datetime(2013, 1, 1, tzinfo=timezone.utc)
        a = RequestSigner("u", SECRET).sign_request("GET", "/rest/objects", {}, now=now)
        b = RequestSigner("u", base64.b64encode(b"other").decode()).sign_request(
            "GET", "/rest/objects", {}, now=now
        )
        assert a["x-emc-signature"] != b["x-emc-signature"]

    def test_invalid_secret(self):
        """A secret that is not Base64 is rejected up front."""
        with pytest.raises(ValidationError):
            RequestSigner("u", "not base64!!")

    def test_empty_secret(self):
        """An empty secret is rejected."""
        with pytest.raises(ValidationError):
            decode_secret("")


class TestHttpDate:
    """Tests for http_date() and parse_http_date()."""

    def test_format(self):
        """Dates use RFC 1123 with GMT."""
        now = datetime(2013, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        assert http_date(now=now) == DATE

    def test_server_offset_applied(self):
        """The offset is added to the local clock."""
        now = datetime(2013, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        assert http_date(90, now=now) == "Tue, 01 Jan 2013 00:01:30 GMT"
        assert http_date(-1, now=now) == "Mon, 31 Dec 2012 23:59:59 GMT"

    def test_parse_round_trip(self):
        """parse_http_date reads back what http_date writes."""
        now = datetime(2013, 1, 1, 12, 30, 5, tzinfo=timezone.utc)
        assert parse_http_date(http_date(now=now)) == now


class TestShareableQuery:
    """Tests for RequestSigner.shareable_query()."""

    def test_query_and_signature(self):
        """The query carries uid, expires and the signature of the documented string."""
        signer = RequestSigner("a1b2c3/user1", SECRET)
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
        unix_time = int(expires.timestamp())
        query = signer.shareable_query("/rest/objects/ABC", expires)

        params = urllib.parse.parse_qs(query)
        assert params["uid"] == ["a1b2c3/user1"]
        assert params["expires"] == [str(unix_time)]
        assert unix_time == 1893456000
        assert params["signature"] == [SHAREABLE_SIGNATURE]
        assert "disposition" not in params
        assert query.startswith("uid=a1b2c3%2Fuser1&")

    def test_disposition_signed(self):
        """A disposition is appended to the signed string and the query."""
        signer = RequestSigner("u", SECRET)
        disposition = 'attachment; filename="a b.txt"'
        query = signer.shareable_query("/rest/objects/abc", 1893456000, disposition)
        params = urllib.parse.parse_qs(query)
        expected = _expected_signature(
            SECRET, f"GET\n/rest/objects/abc\nu\n1893456000\n{disposition}".encode()
        )
        assert params["signature"] == [expected]
        assert params["disposition"] == [disposition]

    def test_naive_datetime_is_utc(self):
        """Naive expiration datetimes are taken as UTC."""
        signer = RequestSigner("u", SECRET)
        aware = signer.shareable_query("/r", datetime(2030, 1, 1, tzinfo=timezone.utc))
        naive = signer.shareable_query("/r", datetime(2030, 1, 1))
        assert aware == naive
