"""Atmos XML response parsing and request body rendering.

Response documents may or may not carry the ``http://www.emc.com/cos/``
namespace, so lookups use the ``{*}`` wildcard and compare local names.
"""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from datetime import datetime, timezone
from xml.sax.saxutils import escape as _sax_escape
from xml.sax.saxutils import quoteattr

from atmosclient.errors import ParseError, ValidationError
from atmosclient.identifiers import ObjectId, ObjectPath
from atmosclient.models import Metadata, MetadataList
from atmosclient.results import (
    AccessToken,
    ContentLengthRange,
    DirectoryEntry,
    FormField,
    ObjectExpiration,
    ObjectInfo,
    ObjectReplica,
    ObjectResult,
    ObjectRetention,
    Policy,
    ServiceInformation,
    Source,
)

logger = logging.getLogger(__name__)


def _escape_xml(value: str) -> str:
    return _sax_escape(str(value))


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _text(elem: ET.Element | None) -> str | None:
    if elem is None:
        return None
    return "".join(elem.itertext())


def _child(parent: ET.Element, name: str) -> ET.Element | None:
    return parent.find(f"{{*}}{name}")


def _child_text(parent: ET.Element, name: str) -> str | None:
    return _text(_child(parent, name))


def _parse_document(body: bytes | str, what: str) -> ET.Element:
    """Parse a response body.

    Raises:
        ParseError: If the body is not well-formed XML. The raw body is kept.
    """
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        logger.debug("Malformed %s response: %r", what, body)
        raise ParseError(f"Error parsing xml {what}: {exc}", body=body) from exc


def _parse_object_id(text: str | None, body: bytes | str) -> ObjectId:
    if text is None:
        raise ParseError("Missing ObjectID element", body=body)
    try:
        return ObjectId(text.strip())
    except ValidationError as exc:
        raise ParseError(str(exc), body=body) from exc


def parse_datetime(text: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as sent by Atmos (``...Z`` means UTC).

    Empty values yield None.
    """
    if text is None or not text.strip():
        return None
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


# -- Lists --------------------------------------------------------------------


def parse_object_list(body: bytes | str) -> list[ObjectId]:
    """Parse every ``<ObjectID>`` element in the document."""
    root = _parse_document(body, "object list")
    return [_parse_object_id(_text(e), body) for e in root.iterfind(".//{*}ObjectID")]


def parse_version_list(body: bytes | str) -> list[ObjectId]:
    """Parse every ``<OID>`` element of a ``?versions`` listing."""
    root = _parse_document(body, "version list")
    return [_parse_object_id(_text(e), body) for e in root.iterfind(".//{*}OID")]


def _parse_metadata_list(
    parent: ET.Element,
    list_name: str,
    system: bool,
    body: bytes | str,
) -> MetadataList:
    result = MetadataList()
    node = _child(parent, list_name)
    if node is None:
        return result
    for meta in node:
        if _local(meta.tag) != "Metadata":
            continue
        name = _child_text(meta, "Name")
        if name is None:
            raise ParseError(f"Metadata entry without Name in {list_name}", body=body)
        value = _child_text(meta, "Value") or ""
        # System metadata is never listable
        listable = not system and (_child_text(meta, "Listable") or "").strip() == "true"
        result.add(Metadata(name, value, listable))
    return result


def parse_object_list_with_metadata(body: bytes | str) -> list[ObjectResult]:
    """Parse ``<Object>`` entries returned when metadata was requested."""
    root = _parse_document(body, "object list")
    results = []
    for obj in root.iterfind(".//{*}Object"):
        results.append(
            ObjectResult(
                id=_parse_object_id(_child_text(obj, "ObjectID"), body),
                system_metadata=_parse_metadata_list(obj, "SystemMetadataList", True, body),
                user_metadata=_parse_metadata_list(obj, "UserMetadataList", False, body),
            )
        )
    return results


def parse_directory_list(body: bytes | str, parent: ObjectPath) -> list[DirectoryEntry]:
    """Parse a namespace directory listing.

    Args:
        body: The response body.
        parent: The directory that was listed; entry paths are built from it.

    Returns:
        One entry per ``<DirectoryEntry>``; directories get a trailing slash.

    Raises:
        ParseError: If the XML is malformed or an entry has no Filename.
    """
    root = _parse_document(body, "directory list")
    base = str(parent)
    if not base.endswith("/"):
        base += "/"

    entries = []
    for node in root.iterfind(".//{*}DirectoryEntry"):
        name = _child_text(node, "Filename")
        if name is None:
            raise ParseError("Could not find object name in directory", body=body)
        file_type = (_child_text(node, "FileType") or "").strip()
        if file_type == "directory":
            name += "/"
        entries.append(
            DirectoryEntry(
                path=ObjectPath(base + name),
                id=_parse_object_id(_child_text(node, "ObjectID"), body),
                type=file_type,
                system_metadata=_parse_metadata_list(node, "SystemMetadataList", True, body),
                user_metadata=_parse_metadata_list(node, "UserMetadataList", False, body),
            )
        )
    return entries


# -- Service and object information -------------------------------------------


def parse_service_information(
    body: bytes | str,
    headers: Mapping[str, str],
) -> ServiceInformation:
    """Parse ``{ctx}/service``: version from XML, capabilities from headers."""
    root = _parse_document(body, "service information")
    info = ServiceInformation()
    if _local(root.tag) == "Atmos":
        info.atmos_version = _text(root)
    else:
        for node in root.iterfind(".//{*}Atmos"):
            info.atmos_version = _text(node)

    for name, value in headers.items():
        lowered = name.lower()
        if lowered == "x-emc-support-utf8" and value == "true":
            info.unicode_metadata_supported = True
        elif lowered == "x-emc-features":
            info.features.extend(f.strip() for f in value.split(",") if f.strip())
    return info


def _parse_replica(node: ET.Element) -> ObjectReplica:
    replica = ObjectReplica()
    for child in node:
        tag = _local(child.tag)
        text = _text(child) or ""
        if tag == "id":
            replica.id = text
        elif tag == "type":
            replica.type = text
        elif tag == "current":
            replica.current = text == "true"
        elif tag == "location":
            replica.location = text
        elif tag == "storageType":
            replica.storage_type = text
        else:
            logger.warning("Unknown replica element: %s", tag)
    return replica


def _parse_lifetime(node: ET.Element, target: ObjectRetention | ObjectExpiration) -> None:
    for child in node:
        tag = _local(child.tag)
        if tag == "enabled":
            target.enabled = (_text(child) or "") == "true"
        elif tag == "endAt":
            target.end_at = parse_datetime(_text(child))
        else:
            logger.warning("Unknown %s element: %s", _local(node.tag), tag)


def parse_object_info(body: bytes | str) -> ObjectInfo:
    """Parse a ``GetObjectInfoResponse`` document.

    Unknown elements are logged and skipped.

    Raises:
        ParseError: If the XML is malformed, the root is missing or a date is invalid.
    """
    root = _parse_document(body, "object info")
    if _local(root.tag) != "GetObjectInfoResponse":
        found = root.find(".//{*}GetObjectInfoResponse")
        if found is None:
            raise ParseError("Missing GetObjectInfoResponse element", body=body)
        root = found

    raw = body.decode("utf-8") if isinstance(body, bytes) else body
    info = ObjectInfo(raw_xml=raw)
    try:
        for child in root:
            tag = _local(child.tag)
            if tag == "objectId":
                info.object_id = _parse_object_id(_text(child), body)
            elif tag == "selection":
                info.selection = _text(child)
            elif tag == "replicas":
                for replica in child:
                    if _local(replica.tag) == "replica":
                        info.replicas.append(_parse_replica(replica))
                    else:
                        logger.warning("Unknown replicas element: %s", _local(replica.tag))
            elif tag == "retention":
                info.retention = ObjectRetention()
                _parse_lifetime(child, info.retention)
            elif tag == "expiration":
                info.expiration = ObjectExpiration()
                _parse_lifetime(child, info.expiration)
            elif tag == "numReplicas":
                pass
            else:
                logger.warning("Unknown object info element: %s", tag)
    except ValueError as exc:
        raise ParseError(f"Invalid value in object info: {exc}", body=body) from exc
    return info


# -- Access tokens ------------------------------------------------------------


def _render_conditions(tag: str, values: list[str]) -> list[str]:
    return [f"<{tag}>{_escape_xml(v)}</{tag}>" for v in values]


def render_policy(policy: Policy) -> str:
    """Render an access token policy document.

    Args:
        policy: The policy to send.

    Returns:
        A ``<policy>`` XML document.
    """
    parts = ['<?xml version="1.0" encoding="UTF-8"?>', "<policy>"]
    if policy.expiration is not None:
        parts.append(f"<expiration>{format_datetime(policy.expiration)}</expiration>")
    if policy.max_uploads is not None:
        parts.append(f"<max-uploads>{policy.max_uploads}</max-uploads>")
    if policy.max_downloads is not None:
        parts.append(f"<max-downloads>{policy.max_downloads}</max-downloads>")
    if policy.source is not None:
        parts.append("<source>")
        parts.extend(_render_conditions("allow", policy.source.allow))
        parts.extend(_render_conditions("disallow", policy.source.disallow))
        parts.append("</source>")
    if policy.content_length_range is not None:
        attrs = ""
        if policy.content_length_range.from_ is not None:
            attrs += f' from="{policy.content_length_range.from_}"'
        if policy.content_length_range.to is not None:
            attrs += f' to="{policy.content_length_range.to}"'
        parts.append(f"<content-length-range{attrs}/>")
    for form_field in policy.form_fields:
        attrs = f"name={quoteattr(form_field.name)}"
        if form_field.optional:
            attrs += ' optional="true"'
        parts.append(f"<form-field {attrs}>")
        parts.extend(_render_conditions("matches", form_field.matches))
        parts.extend(_render_conditions("eq", form_field.eq))
        parts.extend(_render_conditions("starts-with", form_field.starts_with))
        parts.extend(_render_conditions("ends-with", form_field.ends_with))
        parts.extend(_render_conditions("contains", form_field.contains))
        parts.append("</form-field>")
    parts.append("</policy>")
    return "".join(parts)


def _int_or_none(text: str | None) -> int | None:
    if text is None or not text.strip():
        return None
    return int(text.strip())


def _parse_source(node: ET.Element) -> Source:
    return Source(
        allow=[_text(e) or "" for e in node.iterfind("{*}allow")],
        disallow=[_text(e) or "" for e in node.iterfind("{*}disallow")],
    )


def _parse_form_field(node: ET.Element) -> FormField:
    def values(tag: str) -> list[str]:
        return [_text(e) or "" for e in node.iterfind(f"{{*}}{tag}")]

    return FormField(
        name=node.get("name", ""),
        optional=node.get("optional") == "true",
        matches=values("matches"),
        eq=values("eq"),
        starts_with=values("starts-with"),
        ends_with=values("ends-with"),
        contains=values("contains"),
    )


def _parse_access_token_element(node: ET.Element, body: bytes | str) -> AccessToken:
    token_id = _child_text(node, "access-token-id")
    if not token_id:
        raise ParseError("Access token without access-token-id", body=body)
    token = AccessToken(id=token_id.strip())
    try:
        token.expiration = parse_datetime(_child_text(node, "expiration"))
        token.max_uploads = _int_or_none(_child_text(node, "max-uploads"))
        token.max_downloads = _int_or_none(_child_text(node, "max-downloads"))
        source = _child(node, "source")
        if source is not None:
            token.source = _parse_source(source)
        length_range = _child(node, "content-length-range")
        if length_range is not None:
            token.content_length_range = ContentLengthRange(
                from_=_int_or_none(length_range.get("from")),
                to=_int_or_none(length_range.get("to")),
            )
    except ValueError as exc:
        raise ParseError(f"Invalid value in access token: {exc}", body=body) from exc
    token.form_fields = [_parse_form_field(f) for f in node.iterfind("{*}form-field")]
    path = _child_text(node, "path")
    if path:
        token.path = ObjectPath(path)
    object_id = _child_text(node, "object-id")
    if object_id:
        token.object_id = _parse_object_id(object_id, body)
    token.uid = _child_text(node, "uid")
    return token


def parse_access_token(body: bytes | str) -> AccessToken:
    """Parse the ``<access-token>`` document returned by ``?info``."""
    root = _parse_document(body, "access token")
    if _local(root.tag) != "access-token":
        found = root.find(".//{*}access-token")
        if found is None:
            raise ParseError("Missing access-token element", body=body)
        root = found
    return _parse_access_token_element(root, body)


def parse_access_token_list(body: bytes | str) -> list[AccessToken]:
    """Parse a ``<list-access-tokens-result>`` document."""
    root = _parse_document(body, "access token list")
    return [
        _parse_access_token_element(node, body)
        for node in root.iterfind(".//{*}access-tokens-list/{*}access-token")
    ]
