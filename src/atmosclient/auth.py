"""Atmos request signing.

Every request carries ``x-emc-uid``, a ``Date`` / ``x-emc-date`` pair and an
``x-emc-signature``: the Base64 HMAC-SHA1 of a canonical string keyed by the
Base64-decoded shared secret.

The canonical string is::

    METHOD\\n
    Content-Type\\n          (empty line when absent)
    Range\\n                 (empty line when absent)
    Date\\n
    lowercased-resource\\n
    x-emc-a:value\\n
    x-emc-b:value           (sorted by lowercased name, no trailing newline)

The first five lines are encoded as UTF-8 and the ``x-emc`` header block as
ISO-8859-1. The server hashes the same mixed byte sequence, so both
encodings must be kept.

References:
    - Atmos Programmer's Guide, "Authentication"
"""

import base64
import binascii
import hashlib
import hmac
import logging
import urllib.parse
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime, parsedate_to_datetime

from atmosclient.errors import ValidationError

logger = logging.getLogger(__name__)

# Constants
EMC_HEADER_PREFIX = "x-emc"
SIGNATURE_HEADER = "x-emc-signature"
UID_HEADER = "x-emc-uid"
DATE_HEADER = "x-emc-date"
HEADER_ENCODING = "iso-8859-1"

# Characters left unescaped by Atmos' UTF-8 header encoding (RFC 3986 unreserved)
_UNRESERVED = "-_.~"


def normalize_header_value(value: str) -> str:
    """Normalize an x-emc header value for the canonical string.

    Newlines are removed and runs of spaces collapse to one space. The
    replacement repeats until the length stops changing.

    Args:
        value: The raw header value.

    Returns:
        The normalized value.
    """
    value = value.replace("\n", "")
    length = len(value)
    while True:
        value = value.replace("  ", " ")
        if len(value) == length:
            return value
        length = len(value)


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup."""
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def canonical_emc_headers(headers: Mapping[str, str]) -> str:
    """Build the x-emc block of the canonical string.

    Args:
        headers: All request headers.

    Returns:
        ``name:value`` lines for every x-emc header, sorted by lowercased
        name and joined with newlines.
    """
    emc: dict[str, str] = {}
    for name, value in headers.items():
        lowered = name.lower()
        if lowered.startswith(EMC_HEADER_PREFIX):
            emc[lowered] = normalize_header_value(value)
    return "\n".join(f"{name}:{emc[name]}" for name in sorted(emc))


def build_string_to_sign(method: str, resource: str, headers: Mapping[str, str]) -> bytes:
    """Build the exact bytes that are HMAC-signed.

    Args:
        method: HTTP method.
        resource: Request path including the query marker
            (e.g. ``/rest/objects/abc?metadata/user``). Lowercased here.
        headers: All request headers, including ``Date``.

    Returns:
        The UTF-8 prefix followed by the ISO-8859-1 x-emc header block.

    Raises:
        ValidationError: If an x-emc header value cannot be encoded in ISO-8859-1.
    """
    content_type = _get_header(headers, "Content-Type") or ""
    range_value = _get_header(headers, "Range") or ""
    date = _get_header(headers, "Date") or ""

    prefix = f"{method}\n{content_type}\n{range_value}\n{date}\n{resource.lower()}\n"
    emc_block = canonical_emc_headers(headers)

    try:
        emc_bytes = emc_block.encode(HEADER_ENCODING)
    except UnicodeEncodeError as exc:
        raise ValidationError(
            "x-emc header values must be ISO-8859-1; enable UTF-8 mode for non-Latin metadata"
        ) from exc

    logger.debug("String to sign:\n%s%s", prefix, emc_block)
    return prefix.encode("utf-8") + emc_bytes


def decode_secret(secret: str) -> bytes:
    """Decode a Base64 shared secret.

    Raises:
        ValidationError: If the secret is empty or not valid Base64.
    """
    if not secret:
        raise ValidationError("shared secret is required")
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("shared secret is not valid Base64") from exc


def sign(key: bytes, data: bytes) -> str:
    """Return the Base64 HMAC-SHA1 of ``data``."""
    digest = hmac.new(key, data, hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def http_date(server_offset: int = 0, now: datetime | None = None) -> str:
    """Format the request date as RFC 1123, shifted by the server clock offset.

    Args:
        server_offset: Seconds to add to the local clock.
        now: Override for the current time (UTC).

    Returns:
        A date such as ``Tue, 01 Jan 2013 00:00:00 GMT``.
    """
    moment = (now or utc_now()) + timedelta(seconds=server_offset)
    return format_datetime(moment.astimezone(timezone.utc).replace(microsecond=0), usegmt=True)


def parse_http_date(value: str) -> datetime:
    """Parse an RFC 1123 date header into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a valid HTTP date.
    """
    parsed = parsedate_to_datetime(value)
    if parsed is None:
        raise ValueError(f"Invalid HTTP date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _unix_time(expiration: datetime | int | float) -> int:
    if isinstance(expiration, datetime):
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return int(round(expiration.timestamp()))
    return int(round(expiration))


class RequestSigner:
    """Adds authentication headers to outgoing requests.

    The signer holds only the credentials and the clock offset; it keeps no
    per-request state and may be shared between threads.

    Attributes:
        uid: The Atmos UID (``subtenant/user``).
        server_offset: Seconds added to the local clock when dating requests.
    """

    def __init__(self, uid: str, secret: str, server_offset: int = 0) -> None:
        """Initialize the signer.

        Args:
            uid: The Atmos UID.
            secret: The Base64 shared secret.
            server_offset: Server clock offset in seconds.

        Raises:
            ValidationError: If the secret is not valid Base64.
        """
        self.uid = uid
        self.server_offset = server_offset
        self._key = decode_secret(secret)

    def sign_request(
        self,
        method: str,
        resource: str,
        headers: dict[str, str],
        now: datetime | None = None,
    ) -> dict[str, str]:
        """Add uid, date and signature headers to ``headers`` in place.

        Args:
            method: HTTP method.
            resource: Unencoded request path including the query marker.
            headers: Request headers built so far.
            now: Override for the current time (UTC).

        Returns:
            The same ``headers`` dict.
        """
        headers[UID_HEADER] = self.uid
        date = http_date(self.server_offset, now)
        headers["Date"] = date
        headers[DATE_HEADER] = date
        headers[SIGNATURE_HEADER] = sign(self._key, build_string_to_sign(method, resource, headers))
        return headers

    def shareable_query(
        self,
        resource: str,
        expiration: datetime | int | float,
        disposition: str | None = None,
    ) -> str:
        """Build the pre-authenticated query string of a shareable URL.

        Args:
            resource: Unencoded object path.
            expiration: Expiry as a datetime (naive values are UTC) or Unix seconds.
            disposition: Optional Content-Disposition the server should send.

        Returns:
            ``uid=..&expires=..&signature=..[&disposition=..]``.
        """
        expires = _unix_time(expiration)
        string_to_sign = f"GET\n{resource.lower()}\n{self.uid}\n{expires}"
        if disposition is not None:
            string_to_sign += "\n" + disposition
        signature = sign(self._key, string_to_sign.encode("utf-8"))

        query = (
            f"uid={urllib.parse.quote(self.uid, safe=_UNRESERVED)}"
            f"&expires={expires}"
            f"&signature={urllib.parse.quote(signature, safe=_UNRESERVED)}"
        )
        if disposition is not None:
            query += f"&disposition={urllib.parse.quote(disposition, safe=_UNRESERVED)}"
        return query
