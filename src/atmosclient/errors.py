"""Atmos client error definitions."""

import logging
import xml.etree.ElementTree as ET

logger = logging.getLogger(__name__)

# Server error codes with dedicated exception classes
CODE_OBJECT_NOT_FOUND = 1003
CODE_SIGNATURE_MISMATCH = 1032


class AtmosError(Exception):
    """Base class for every error raised by the client.

    Attributes:
        message: Human-readable error description.
        code: The Atmos error code (0 when the error did not come from the server).
        http_status: The HTTP status code of the failed response, if any.
    """

    def __init__(
        self,
        message: str,
        code: int = 0,
        http_status: int | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Error description.
            code: Atmos error code (default 0).
            http_status: HTTP status code, if a response was received.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code {self.code})"
        return self.message


# -- Local errors -------------------------------------------------------------


class InvalidUrl(AtmosError):
    """The request URL could not be built."""

    def __init__(self, message: str = "Invalid URL") -> None:
        super().__init__(message)


class AtmosConnectionError(AtmosError):
    """The server could not be reached or the connection failed mid-request."""

    def __init__(self, message: str = "Error connecting to server") -> None:
        super().__init__(message)


class ValidationError(AtmosError):
    """An argument or value object failed validation before any request was sent."""

    def __init__(self, message: str = "Invalid argument") -> None:
        super().__init__(message)


class ParseError(AtmosError):
    """A response body or header could not be parsed.

    Attributes:
        body: The raw response body, kept for diagnosis.
    """

    def __init__(
        self,
        message: str = "Could not parse response",
        body: bytes | str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message, http_status=http_status)
        self.body = body


class ChecksumMismatch(AtmosError):
    """The locally computed checksum does not match the server's value."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Checksum mismatch: expected {expected}, computed {actual}")
        self.expected = expected
        self.actual = actual


# -- Errors reported by the server --------------------------------------------


class HttpError(AtmosError):
    """An HTTP error whose body was not an Atmos error document."""

    def __init__(self, http_status: int, reason: str = "") -> None:
        message = f"HTTP {http_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, http_status=http_status)
        self.reason = reason


class ServerError(AtmosError):
    """An error document (<Code>/<Message>) returned by the server."""

    def __init__(self, code: int, message: str, http_status: int | None = None) -> None:
        super().__init__(message, code=code, http_status=http_status)


class SignatureMismatch(ServerError):
    """The server computed a different request signature (code 1032)."""

    def __init__(
        self,
        message: str = (
            "The request signature we calculated does not match the signature you provided."
        ),
        http_status: int | None = 403,
    ) -> None:
        super().__init__(CODE_SIGNATURE_MISMATCH, message, http_status)


class NotFound(ServerError):
    """The requested object or tag does not exist (code 1003)."""

    def __init__(
        self,
        message: str = "The requested object was not found.",
        http_status: int | None = 404,
    ) -> None:
        super().__init__(CODE_OBJECT_NOT_FOUND, message, http_status)


# Empty tag listings are reported by the server as a missing object.
EmptyResult = NotFound

_CODE_MAP: dict[int, type[ServerError]] = {
    CODE_OBJECT_NOT_FOUND: NotFound,
    CODE_SIGNATURE_MISMATCH: SignatureMismatch,
}


def error_from_response(status: int, reason: str, body: bytes) -> AtmosError:
    """Build the exception describing a failed response.

    The body is expected to be an Atmos error document with ``<Code>`` and
    ``<Message>`` elements. Anything else becomes an ``HttpError`` built from
    the status line.

    Args:
        status: HTTP status code.
        reason: HTTP reason phrase.
        body: Raw response body.

    Returns:
        The exception to raise (not raised here).
    """
    if not body:
        return HttpError(status, reason)

    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        logger.debug("Could not parse error body for %s %s: %r", status, reason, body)
        return HttpError(status, reason)

    code_el = root.find(".//{*}Code")
    message_el = root.find(".//{*}Message")
    if code_el is None or message_el is None:
        return HttpError(status, reason)

    try:
        code = int((code_el.text or "").strip())
    except ValueError:
        return HttpError(status, reason)

    message = (message_el.text or "").strip()
    error_cls = _CODE_MAP.get(code)
    if error_cls is not None:
        return error_cls(message, http_status=status)
    return ServerError(code, message, http_status=status)
