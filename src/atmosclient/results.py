"""Typed results returned by the Atmos client."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from atmosclient.identifiers import ObjectId, ObjectPath
from atmosclient.models import Acl, MetadataList

T = TypeVar("T")


# -- Object results -----------------------------------------------------------


@dataclass
class ObjectMetadata:
    """Metadata, ACL and content type of an object, as returned by HEAD."""

    metadata: MetadataList = field(default_factory=MetadataList)
    acl: Acl | None = None
    mime_type: str | None = None


@dataclass
class ObjectResult:
    """An entry of an object listing.

    Metadata is only populated when the listing asked for it.
    """

    id: ObjectId
    system_metadata: MetadataList = field(default_factory=MetadataList)
    user_metadata: MetadataList = field(default_factory=MetadataList)


@dataclass
class DirectoryEntry:
    """An entry of a namespace directory listing."""

    path: ObjectPath
    id: ObjectId
    type: str
    system_metadata: MetadataList = field(default_factory=MetadataList)
    user_metadata: MetadataList = field(default_factory=MetadataList)

    @property
    def is_directory(self) -> bool:
        return self.type == "directory"


@dataclass
class ObjectReplica:
    id: str | None = None
    type: str | None = None
    current: bool = False
    location: str | None = None
    storage_type: str | None = None


@dataclass
class ObjectRetention:
    enabled: bool = False
    end_at: datetime | None = None


@dataclass
class ObjectExpiration:
    enabled: bool = False
    end_at: datetime | None = None


@dataclass
class ObjectInfo:
    """Storage details of an object (``?info``).

    Attributes:
        raw_xml: The response body the info was parsed from.
    """

    object_id: ObjectId | None = None
    selection: str | None = None
    replicas: list[ObjectReplica] = field(default_factory=list)
    retention: ObjectRetention | None = None
    expiration: ObjectExpiration | None = None
    raw_xml: str = ""


@dataclass
class ServiceInformation:
    """Version and capabilities reported by ``{ctx}/service``."""

    atmos_version: str | None = None
    unicode_metadata_supported: bool = False
    features: list[str] = field(default_factory=list)

    def has_feature(self, feature: str) -> bool:
        return feature in self.features


# -- Listing ------------------------------------------------------------------


@dataclass(frozen=True)
class ListOptions:
    """Input options of a listing call.

    Attributes:
        limit: Maximum number of results per page; 0 lets the server decide.
        token: Continuation token from a previous page.
        include_metadata: Ask the server to return metadata with each entry.
        user_metadata: Restrict returned user metadata to these names.
        system_metadata: Restrict returned system metadata to these names.
    """

    limit: int = 0
    token: str | None = None
    include_metadata: bool = False
    user_metadata: tuple[str, ...] = ()
    system_metadata: tuple[str, ...] = ()

    def with_token(self, token: str | None) -> ListOptions:
        """Return a copy of these options positioned at ``token``."""
        return ListOptions(
            limit=self.limit,
            token=token,
            include_metadata=self.include_metadata,
            user_metadata=self.user_metadata,
            system_metadata=self.system_metadata,
        )


@dataclass
class ListPage(Generic[T]):
    """One page of a listing.

    ``token`` is the continuation token sent by the server, or None when
    this is the last page.
    """

    items: list[T]
    token: str | None = None

    @property
    def truncated(self) -> bool:
        return self.token is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


# -- Streaming reads ----------------------------------------------------------


class ReadObjectResponse:
    """An open streaming read of object content.

    The underlying HTTP response stays open until ``close()`` is called or
    the ``with`` block exits. Reading after close raises ``RuntimeError``
    from the transport.
    """

    def __init__(
        self,
        response: Any,
        http_client: Any,
        metadata: ObjectMetadata,
        checksum: str | None = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._response = response
        self._http_client = http_client
        self._chunk_size = chunk_size
        self.metadata = metadata
        self.checksum = checksum
        self.closed = False

    @property
    def content_type(self) -> str | None:
        return self.metadata.mime_type

    @property
    def content_length(self) -> int | None:
        value = self._response.headers.get("content-length")
        return int(value) if value is not None else None

    def iter_bytes(self) -> Iterator[bytes]:
        """Yield the content in chunks."""
        yield from self._response.iter_bytes(self._chunk_size)

    def read(self) -> bytes:
        """Read the remaining content."""
        return self._response.read()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._response.close()
        finally:
            self._http_client.close()

    def __enter__(self) -> ReadObjectResponse:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# -- Access tokens ------------------------------------------------------------


@dataclass
class Source:
    """Client address restrictions of an access token (CIDR strings)."""

    allow: list[str] = field(default_factory=list)
    disallow: list[str] = field(default_factory=list)


@dataclass
class ContentLengthRange:
    from_: int | None = None
    to: int | None = None


@dataclass
class FormField:
    """A condition on an upload form field.

    Each condition list holds values the field is tested against.
    """

    name: str
    optional: bool = False
    matches: list[str] = field(default_factory=list)
    eq: list[str] = field(default_factory=list)
    starts_with: list[str] = field(default_factory=list)
    ends_with: list[str] = field(default_factory=list)
    contains: list[str] = field(default_factory=list)


@dataclass
class Policy:
    """Restrictions applied to an anonymous access token."""

    expiration: datetime | None = None
    max_uploads: int | None = None
    max_downloads: int | None = None
    source: Source | None = None
    content_length_range: ContentLengthRange | None = None
    form_fields: list[FormField] = field(default_factory=list)


@dataclass
class AccessToken:
    """Details of an access token as reported by the server."""

    id: str
    expiration: datetime | None = None
    max_uploads: int | None = None
    max_downloads: int | None = None
    source: Source | None = None
    content_length_range: ContentLengthRange | None = None
    form_fields: list[FormField] = field(default_factory=list)
    path: ObjectPath | None = None
    object_id: ObjectId | None = None
    uid: str | None = None
