"""Header codecs for metadata, tags and ACLs.

Atmos carries metadata and ACLs in comma-separated request and response
headers rather than in the body. The encoding depends on the UTF-8 mode:

    - UTF-8 mode: names and values are percent-encoded and the request
      carries ``x-emc-utf8: true``.
    - Legacy mode: values are sent raw with commas and newlines stripped.

The mode is always passed in explicitly.
"""

import logging
import re
import urllib.parse
from collections.abc import Iterable, Mapping

from atmosclient.errors import ParseError, ValidationError
from atmosclient.identifiers import ObjectId
from atmosclient.models import (
    ALL_CONTENT,
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
    range_header,
)

logger = logging.getLogger(__name__)

# Request/response header names
META = "x-emc-meta"
LISTABLE_META = "x-emc-listable-meta"
USER_ACL = "x-emc-useracl"
GROUP_ACL = "x-emc-groupacl"
TAGS = "x-emc-tags"
LISTABLE_TAGS = "x-emc-listable-tags"
UTF8 = "x-emc-utf8"
EXPIRATION_PERIOD = "x-emc-expiration-period"
RETENTION_PERIOD = "x-emc-retention-period"

# Location: /rest/objects/<id>
_OBJECT_ID_EXTRACTOR = re.compile(r"/[^/]+/objects/([0-9a-f-]{44,})")


def utf8_encode(value: str) -> str:
    """Percent-encode a value the way Atmos expects in UTF-8 mode."""
    return urllib.parse.quote(value, safe="-_.~").replace("+", "%20")


def utf8_decode(value: str) -> str:
    return urllib.parse.unquote(value)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    # httpx.Headers is already case-insensitive; plain dicts are not
    value = headers.get(name)
    if value is None:
        value = headers.get(name.title())
    return value


# -- Metadata -----------------------------------------------------------------


def format_metadata_entry(metadata: Metadata, utf8: bool) -> str:
    """Render one entry as ``name=value``."""
    value = metadata.value or ""
    if utf8:
        return f"{utf8_encode(metadata.name)}={utf8_encode(value)}"
    # Commas and newlines would break the header list
    value = value.replace(",", "").replace("\n", "")
    return f"{metadata.name}={value}"


def encode_metadata(metadata: MetadataList, utf8: bool) -> dict[str, str]:
    """Build the metadata request headers.

    Listable entries go to ``x-emc-listable-meta`` and the rest to
    ``x-emc-meta``. A header is only emitted when it has entries.

    Args:
        metadata: The metadata to send.
        utf8: Whether UTF-8 mode is enabled.

    Returns:
        A dict of headers to merge into the request.
    """
    listable = [format_metadata_entry(m, utf8) for m in metadata if m.listable]
    regular = [format_metadata_entry(m, utf8) for m in metadata if not m.listable]

    headers: dict[str, str] = {}
    if listable:
        headers[LISTABLE_META] = ", ".join(listable)
    if regular:
        headers[META] = ", ".join(regular)
    if metadata.expiration_period is not None:
        headers[EXPIRATION_PERIOD] = str(metadata.expiration_period)
    if metadata.retention_period is not None:
        headers[RETENTION_PERIOD] = str(metadata.retention_period)
    if utf8:
        headers[UTF8] = "true"
    return headers


def parse_metadata_header(
    value: str | None,
    listable: bool,
    utf8: bool,
    into: MetadataList | None = None,
) -> MetadataList:
    """Parse a ``name=value, name=value`` header.

    Args:
        value: The header value, or None when the header was absent.
        listable: Flag assigned to every parsed entry.
        utf8: Whether the server percent-encoded the entries.
        into: Existing list to add to.

    Returns:
        The list the entries were added to.
    """
    result = into if into is not None else MetadataList()
    if not value:
        return result
    for attr in value.split(","):
        if not attr:
            continue
        name, _, entry_value = attr.partition("=")
        name = name.strip()
        if not name:
            continue
        if utf8:
            name = utf8_decode(name)
            entry_value = utf8_decode(entry_value)
        result.add(Metadata(name, entry_value, listable))
    return result


def decode_metadata(headers: Mapping[str, str], utf8: bool) -> MetadataList:
    """Read both metadata headers of a response."""
    metadata = MetadataList()
    parse_metadata_header(_header(headers, META), False, utf8, into=metadata)
    parse_metadata_header(_header(headers, LISTABLE_META), True, utf8, into=metadata)
    return metadata


# -- Tags ---------------------------------------------------------------------


def encode_tags(tags: Iterable[MetadataTag | str], utf8: bool) -> dict[str, str]:
    """Build the ``x-emc-tags`` request header.

    Returns:
        The header dict; empty when there are no tags.
    """
    names = [tag if isinstance(tag, str) else tag.name for tag in tags]
    headers: dict[str, str] = {}
    if names:
        headers[TAGS] = ",".join(utf8_encode(n) if utf8 else n for n in names)
    if utf8:
        headers[UTF8] = "true"
    return headers


def parse_tags_header(
    value: str | None,
    listable: bool,
    utf8: bool,
    into: MetadataTags | None = None,
) -> MetadataTags:
    result = into if into is not None else MetadataTags()
    if not value:
        return result
    for attr in value.split(","):
        attr = attr.strip()
        if not attr:
            continue
        result.add(MetadataTag(utf8_decode(attr) if utf8 else attr, listable))
    return result


def decode_tags(headers: Mapping[str, str], utf8: bool) -> MetadataTags:
    """Read listable and regular tag names from a response."""
    tags = MetadataTags()
    parse_tags_header(_header(headers, LISTABLE_TAGS), True, utf8, into=tags)
    parse_tags_header(_header(headers, TAGS), False, utf8, into=tags)
    return tags


# -- ACL ----------------------------------------------------------------------


def encode_acl(acl: Acl) -> dict[str, str]:
    """Build the ACL request headers.

    Both headers are always present, even when empty, so that a request
    can clear all user or group grants.
    """
    return {
        USER_ACL: ",".join(str(g) for g in acl.user_grants()),
        GROUP_ACL: ",".join(str(g) for g in acl.group_grants()),
    }


def parse_acl_header(
    value: str | None,
    grantee_type: GranteeType,
    into: Acl | None = None,
) -> Acl:
    """Parse a ``grantee=PERMISSION,...`` header.

    The server's ``FULL`` is normalized to ``FULL_CONTROL``.

    Raises:
        ParseError: If an entry has no permission.
    """
    acl = into if into is not None else Acl()
    if not value:
        return acl
    for entry in value.split(","):
        if not entry.strip():
            continue
        grantee, sep, permission = entry.partition("=")
        if not sep:
            raise ParseError(f"Malformed ACL entry: {entry!r}", body=value)
        acl.add(Grant(Grantee(grantee.strip(), grantee_type), Permission.normalize(permission)))
    return acl


def decode_acl(headers: Mapping[str, str]) -> Acl:
    acl = Acl()
    parse_acl_header(_header(headers, USER_ACL), GranteeType.USER, into=acl)
    parse_acl_header(_header(headers, GROUP_ACL), GranteeType.GROUP, into=acl)
    return acl


# -- Misc ---------------------------------------------------------------------


def parse_location(location: str | None) -> ObjectId:
    """Extract the new object ID from a ``Location`` header.

    Raises:
        ParseError: If the header is missing or holds no object ID.
    """
    if not location:
        raise ParseError("Response has no Location header")
    match = _OBJECT_ID_EXTRACTOR.search(location)
    if match is None:
        raise ParseError(f"Could not find ObjectId in {location}", body=location)
    return ObjectId(match.group(1))


def format_range(extent: Extent | Iterable[Extent] | None) -> str | None:
    """Return the Range header for one or more extents.

    None and ``ALL_CONTENT`` mean the whole object, i.e. no header.

    Raises:
        ValidationError: If an extent is invalid.
    """
    if extent is None:
        return None
    if isinstance(extent, Extent):
        if extent == ALL_CONTENT:
            return None
        return range_header([extent])
    extents = list(extent)
    if any(e == ALL_CONTENT for e in extents):
        raise ValidationError("ALL_CONTENT cannot be combined with other extents")
    return range_header(extents)
