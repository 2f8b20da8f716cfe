"""Python client for the EMC Atmos / ECS object REST API."""

from atmosclient.checksum import Checksum
from atmosclient.client import AtmosClient, LoadBalancedAtmosClient
from atmosclient.config import ClientConfig, load_config
from atmosclient.content import BufferSegment, BytesContent, ContentSource, StreamContent
from atmosclient.errors import (
    AtmosConnectionError,
    AtmosError,
    ChecksumMismatch,
    EmptyResult,
    HttpError,
    InvalidUrl,
    NotFound,
    ParseError,
    ServerError,
    SignatureMismatch,
    ValidationError,
)
from atmosclient.identifiers import Identifier, ObjectId, ObjectKey, ObjectPath
from atmosclient.models import (
    ALL_CONTENT,
    OTHER,
    Acl,
    Extent,
    Grant,
    Grantee,
    GranteeType,
    Metadata,
    MetadataList,
    MetadataTag,
    MetadataTags,
    Permission,
)
from atmosclient.results import (
    AccessToken,
    DirectoryEntry,
    ListOptions,
    ListPage,
    ObjectInfo,
    ObjectMetadata,
    ObjectResult,
    Policy,
    ReadObjectResponse,
    ServiceInformation,
)

__all__ = [
    "ALL_CONTENT",
    "AccessToken",
    "Acl",
    "AtmosClient",
    "AtmosConnectionError",
    "AtmosError",
    "BufferSegment",
    "BytesContent",
    "Checksum",
    "ChecksumMismatch",
    "ClientConfig",
    "ContentSource",
    "DirectoryEntry",
    "EmptyResult",
    "Extent",
    "Grant",
    "Grantee",
    "GranteeType",
    "HttpError",
    "Identifier",
    "InvalidUrl",
    "ListOptions",
    "ListPage",
    "LoadBalancedAtmosClient",
    "Metadata",
    "MetadataList",
    "MetadataTag",
    "MetadataTags",
    "NotFound",
    "OTHER",
    "ObjectId",
    "ObjectInfo",
    "ObjectKey",
    "ObjectMetadata",
    "ObjectPath",
    "ObjectResult",
    "ParseError",
    "Permission",
    "Policy",
    "ReadObjectResponse",
    "ServerError",
    "ServiceInformation",
    "SignatureMismatch",
    "StreamContent",
    "ValidationError",
    "load_config",
]
