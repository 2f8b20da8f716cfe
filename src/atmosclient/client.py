"""REST facade of the Atmos client.

Each public method issues exactly one signed request through a short-lived
``httpx.Client`` that is closed before the method returns (streaming reads
hand the open response to the caller). Nothing is retried.
"""

import logging
import threading
import time
import urllib.parse
from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Any

import httpx

from atmosclient import headers as hdr
from atmosclient import xml_utils
from atmosclient.auth import HEADER_ENCODING, RequestSigner, parse_http_date, utc_now
from atmosclient.checksum import Checksum
from atmosclient.config import ClientConfig
from atmosclient.content import ContentSource, as_content_source
from atmosclient.errors import (
    AtmosConnectionError,
    InvalidUrl,
    ParseError,
    ValidationError,
    error_from_response,
)
from atmosclient.identifiers import Identifier, ObjectId, ObjectKey, ObjectPath
from atmosclient.logging_config import configure_logging, request_extra
from atmosclient.models import Acl, Extent, MetadataList, MetadataTag, MetadataTags
from atmosclient.multipart import MultipartEntity, boundary_from_content_type, parse_multipart
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

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
WSCHECKSUM = "x-emc-wschecksum"
TOKEN = "x-emc-token"

# Characters kept as-is when a resource path is placed in a URL
_PATH_SAFE = "/!$&'()*+,;=:@"

Tags = Iterable[MetadataTag | str] | MetadataTags | None


class AtmosClient:
    """Client for the Atmos object REST API.

    The client holds only immutable settings; it can be shared between
    threads. A ``Checksum`` passed to a call is the one piece of state that
    spans calls, and callers must serialize its use.

    Attributes:
        uid: The Atmos UID used to sign requests.
        context: REST context path, usually ``/rest``.
        utf8: Whether metadata and tags are sent percent-encoded.
    """

    def __init__(
        self,
        host: str,
        uid: str,
        secret: str,
        *,
        port: int = 443,
        protocol: str | None = None,
        context: str = "/rest",
        utf8: bool = True,
        server_offset: int = 0,
        custom_headers: dict[str, str] | None = None,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        proxy: str | None = None,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Hostname or IP of the Atmos access node.
            uid: The Atmos UID (``subtenant/user``).
            secret: The Base64 shared secret.
            port: TCP port.
            protocol: ``http`` or ``https``; derived from the port when None.
            context: REST context path.
            utf8: Enable UTF-8 metadata encoding.
            server_offset: Seconds to add to the local clock when dating requests.
            custom_headers: Extra headers added after signing (unsigned).
            connect_timeout: Connect timeout in seconds.
            read_timeout: Read timeout in seconds.
            proxy: Optional proxy URL.
            verify: Verify TLS certificates.
            transport: httpx transport override (tests use ``httpx.MockTransport``).

        Raises:
            ValidationError: If the secret is not valid Base64.
        """
        self._hosts = [host]
        self.uid = uid
        self.port = port
        self.protocol = protocol or ("https" if port == 443 else "http")
        self.context = context.rstrip("/")
        self.utf8 = utf8
        self._signer = RequestSigner(uid, secret, server_offset)
        self._custom_headers = dict(custom_headers or {})
        self._timeout = httpx.Timeout(None, connect=connect_timeout, read=read_timeout)
        self._proxy = proxy
        self._verify = verify
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        configure_logs: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> "AtmosClient":
        """Build a client from a ClientConfig.

        More than one configured host yields a ``LoadBalancedAtmosClient``.

        Args:
            config: The loaded configuration.
            configure_logs: Apply ``config.logging`` via ``configure_logging``.
            transport: httpx transport override.
        """
        if configure_logs:
            configure_logging(config.logging.level, config.logging.format)

        conn = config.connection
        kwargs: dict[str, Any] = {
            "port": conn.port,
            "protocol": conn.protocol,
            "context": conn.context,
            "utf8": config.protocol.utf8_enabled,
            "server_offset": config.protocol.server_offset,
            "custom_headers": config.protocol.custom_headers,
            "connect_timeout": conn.connect_timeout,
            "read_timeout": conn.read_timeout,
            "proxy": conn.proxy,
            "verify": conn.verify_tls,
            "transport": transport,
        }
        if len(conn.hosts) > 1 or issubclass(cls, LoadBalancedAtmosClient):
            return LoadBalancedAtmosClient(
                conn.hosts, config.auth.uid, config.auth.secret, **kwargs
            )
        return cls(conn.hosts[0], config.auth.uid, config.auth.secret, **kwargs)

    @property
    def server_offset(self) -> int:
        return self._signer.server_offset

    # -- Transport ------------------------------------------------------------

    def _next_host(self) -> str:
        return self._hosts[0]

    def _base_url(self, host: str) -> str:
        return f"{self.protocol}://{host}:{self.port}"

    def _http_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self._timeout,
            proxy=self._proxy,
            verify=self._verify,
            transport=self._transport,
        )

    def _open(
        self,
        method: str,
        path: str,
        query: str | None = None,
        headers: dict[str, str] | None = None,
        content: bytes | Iterator[bytes] | None = None,
        *,
        stream: bool = False,
        sign: bool = True,
        raise_for_status: bool = True,
    ) -> tuple[httpx.Client, httpx.Response]:
        """Send one request and return the open client and response.

        On any error both are closed before the exception propagates.

        Args:
            method: HTTP method.
            path: Unencoded resource path.
            query: Query marker such as ``metadata/user``; part of the signed resource.
            headers: Request headers; signing headers are added.
            content: Request body.
            stream: Leave the response body unread.
            sign: Add authentication headers.
            raise_for_status: Raise the mapped error for statuses above 299.

        Raises:
            InvalidUrl: If the URL cannot be built.
            AtmosConnectionError: On network failures.
            AtmosError: The error mapped from an error response.
        """
        request_headers = dict(headers or {})
        resource = path if query is None else f"{path}?{query}"
        if sign:
            self._signer.sign_request(method, resource, request_headers)
        # Added after signing, so never part of the signature
        request_headers.update(self._custom_headers)
        try:
            encoded_headers = {
                name: value.encode(HEADER_ENCODING) for name, value in request_headers.items()
            }
        except UnicodeEncodeError as exc:
            raise ValidationError(f"Header values must be ISO-8859-1: {exc}") from exc

        url = self._base_url(self._next_host()) + urllib.parse.quote(path, safe=_PATH_SAFE)
        if query is not None:
            url += "?" + query

        client = self._http_client()
        response: httpx.Response | None = None
        started = time.monotonic()
        try:
            request = client.build_request(method, url, headers=encoded_headers, content=content)
            response = client.send(request, stream=stream)
            logger.debug(
                "%s %s -> %s",
                method,
                resource,
                response.status_code,
                extra=request_extra(method, resource, response.status_code, started, self.uid),
            )
            if raise_for_status and response.status_code > 299:
                body = response.read()
                raise error_from_response(response.status_code, response.reason_phrase, body)
        except httpx.InvalidURL as exc:
            self._close(client, response)
            raise InvalidUrl(f"Invalid URL {url}: {exc}") from exc
        except (httpx.HTTPError, httpx.StreamError) as exc:
            self._close(client, response)
            logger.debug(
                "%s %s failed: %s",
                method,
                resource,
                exc,
                extra=request_extra(method, resource, None, started, self.uid),
            )
            raise AtmosConnectionError(f"Error connecting to server: {exc}") from exc
        except BaseException:
            self._close(client, response)
            raise
        return client, response

    def _send(
        self, method: str, path: str, query: str | None = None, **kwargs: Any
    ) -> httpx.Response:
        """Send one request, read the whole response and close the connection."""
        client, response = self._open(method, path, query, **kwargs)
        self._close(client, response)
        return response

    @staticmethod
    def _close(client: httpx.Client, response: httpx.Response | None) -> None:
        try:
            if response is not None:
                response.close()
        finally:
            client.close()

    # -- Request building -----------------------------------------------------

    def _headers(self, identifier: Identifier | None = None, utf8: bool = False) -> dict[str, str]:
        headers: dict[str, str] = {}
        if identifier is not None:
            headers.update(identifier.extra_headers())
        if utf8 and self.utf8:
            headers[hdr.UTF8] = "true"
        return headers

    def _resource(self, identifier: Identifier) -> str:
        if not isinstance(identifier, Identifier):
            raise ValidationError(f"Not an object identifier: {identifier!r}")
        return identifier.resource_path(self.context)

    def _add_tags(self, headers: dict[str, str], tags: Tags) -> None:
        if tags is not None:
            headers.update(hdr.encode_tags(tags, self.utf8))

    def _write_headers(
        self,
        headers: dict[str, str],
        acl: Acl | None,
        metadata: MetadataList | None,
        mime_type: str | None,
    ) -> None:
        headers["Content-Type"] = mime_type or DEFAULT_MIME_TYPE
        if acl is not None:
            headers.update(hdr.encode_acl(acl))
        if metadata is not None:
            headers.update(hdr.encode_metadata(metadata, self.utf8))

    def _write_body(
        self,
        headers: dict[str, str],
        source: ContentSource | None,
        checksum: Checksum | None,
    ) -> bytes | Iterator[bytes]:
        """Prepare the request body and the wschecksum header."""
        if source is None:
            data = b""
            if checksum is not None:
                headers[WSCHECKSUM] = str(checksum)
            return data
        if checksum is not None:
            # The header must cover this write, so the content is read up front
            data = source.read_all()
            checksum.update(data)
            headers[WSCHECKSUM] = str(checksum)
            return data
        body = source.body()
        if not isinstance(body, bytes):
            headers["Content-Length"] = str(source.length)
        return body

    def _object_metadata(self, response: httpx.Response) -> ObjectMetadata:
        return ObjectMetadata(
            metadata=hdr.decode_metadata(response.headers, self.utf8),
            acl=hdr.decode_acl(response.headers),
            mime_type=response.headers.get("content-type"),
        )

    # -- Objects --------------------------------------------------------------

    def create_object(
        self,
        content: ContentSource | bytes | str | None = None,
        *,
        destination: ObjectPath | ObjectKey | None = None,
        acl: Acl | None = None,
        metadata: MetadataList | None = None,
        mime_type: str | None = None,
        checksum: Checksum | None = None,
    ) -> ObjectId:
        """Create an object.

        Args:
            content: Initial content: bytes, str (UTF-8) or a ContentSource.
            destination: Namespace path or pool key; None lets the server assign an ID only.
            acl: Initial ACL; None uses the server default.
            metadata: Initial user metadata.
            mime_type: Content type; defaults to ``application/octet-stream``.
            checksum: Running checksum to update and send as ``x-emc-wschecksum``.

        Returns:
            The new object's ID, taken from the Location header.
        """
        if destination is None:
            path = f"{self.context}/objects"
            headers = self._headers()
        else:
            if isinstance(destination, ObjectId):
                raise ValidationError("Objects cannot be created at a given object ID")
            path = self._resource(destination)
            headers = self._headers(destination)
        self._write_headers(headers, acl, metadata, mime_type)
        body = self._write_body(headers, as_content_source(content), checksum)

        response = self._send("POST", path, headers=headers, content=body)
        return hdr.parse_location(response.headers.get("location"))

    def update_object(
        self,
        identifier: Identifier,
        content: ContentSource | bytes | str | None = None,
        *,
        extent: Extent | None = None,
        acl: Acl | None = None,
        metadata: MetadataList | None = None,
        mime_type: str | None = None,
        checksum: Checksum | None = None,
    ) -> None:
        """Replace or partially overwrite an object's content.

        Args:
            identifier: The object to update.
            content: New content.
            extent: Where to write; None or ``ALL_CONTENT`` replaces everything.
            acl: ACL to set along with the write.
            metadata: User metadata to set along with the write.
            mime_type: Content type.
            checksum: Running checksum threaded through successive writes.
        """
        headers = self._headers(identifier)
        self._write_headers(headers, acl, metadata, mime_type)
        range_value = hdr.format_range(extent)
        if range_value is not None:
            headers["Range"] = range_value
        body = self._write_body(headers, as_content_source(content), checksum)
        self._send("PUT", self._resource(identifier), headers=headers, content=body)

    def read_object(
        self,
        identifier: Identifier,
        extent: Extent | None = None,
        *,
        checksum: Checksum | None = None,
    ) -> bytes:
        """Read object content.

        When a checksum is given and the server reports ``x-emc-wschecksum``,
        the data is added to the checksum and verified once the whole
        object has been read.

        Raises:
            ChecksumMismatch: If the verified checksum differs.
        """
        headers = self._headers(identifier)
        range_value = hdr.format_range(extent)
        if range_value is not None:
            headers["Range"] = range_value
        response = self._send("GET", self._resource(identifier), headers=headers)
        data = response.content

        server_checksum = response.headers.get(WSCHECKSUM)
        if checksum is not None and server_checksum is not None:
            checksum.expected_value = server_checksum
            checksum.update(data)
            checksum.verify()
        return data

    def read_object_stream(
        self, identifier: Identifier, extent: Extent | None = None
    ) -> ReadObjectResponse:
        """Open a streaming read; the caller must close the result."""
        headers = self._headers(identifier, utf8=True)
        range_value = hdr.format_range(extent)
        if range_value is not None:
            headers["Range"] = range_value
        client, response = self._open(
            "GET", self._resource(identifier), headers=headers, stream=True
        )
        try:
            metadata = self._object_metadata(response)
        except BaseException:
            self._close(client, response)
            raise
        return ReadObjectResponse(response, client, metadata, response.headers.get(WSCHECKSUM))

    def read_object_extents(
        self, identifier: Identifier, extents: Iterable[Extent]
    ) -> MultipartEntity:
        """Read several byte ranges in one multipart/byteranges request.

        Raises:
            ValidationError: If no extent is given.
            ParseError: If the response is not a well-formed multipart body.
        """
        headers = self._headers(identifier)
        range_value = hdr.format_range(list(extents))
        if range_value is None:
            raise ValidationError("You must specify extents for this call")
        headers["Range"] = range_value
        response = self._send("GET", self._resource(identifier), headers=headers)

        content_type = response.headers.get("content-type")
        try:
            boundary = boundary_from_content_type(content_type)
        except ParseError as exc:
            raise ParseError(
                f"Expected multipart response, but instead got {content_type}",
                body=response.content,
                http_status=response.status_code,
            ) from exc
        return parse_multipart(response.content, boundary)

    def delete_object(self, identifier: Identifier) -> None:
        self._send("DELETE", self._resource(identifier), headers=self._headers(identifier))

    # -- Metadata -------------------------------------------------------------

    def get_user_metadata(self, identifier: Identifier, tags: Tags = None) -> MetadataList:
        """Fetch user metadata, optionally restricted to the given names."""
        headers = self._headers(identifier, utf8=True)
        self._add_tags(headers, tags)
        response = self._send("GET", self._resource(identifier), "metadata/user", headers=headers)
        return hdr.decode_metadata(response.headers, self.utf8)

    def get_system_metadata(self, identifier: Identifier, tags: Tags = None) -> MetadataList:
        """Fetch system metadata (size, ctime, uid, ...)."""
        headers = self._headers(identifier, utf8=True)
        self._add_tags(headers, tags)
        response = self._send("GET", self._resource(identifier), "metadata/system", headers=headers)
        return hdr.decode_metadata(response.headers, self.utf8)

    def set_user_metadata(self, identifier: Identifier, metadata: MetadataList) -> None:
        headers = self._headers(identifier)
        headers.update(hdr.encode_metadata(metadata, self.utf8))
        self._send("POST", self._resource(identifier), "metadata/user", headers=headers)

    def delete_user_metadata(self, identifier: Identifier, tags: Tags) -> None:
        """Delete the named user metadata entries.

        Raises:
            ValidationError: If no tag is given.
        """
        headers = self._headers(identifier, utf8=True)
        self._add_tags(headers, tags)
        if hdr.TAGS not in headers:
            raise ValidationError("You must specify at least one tag to delete")
        self._send("DELETE", self._resource(identifier), "metadata/user", headers=headers)

    def get_all_metadata(self, identifier: Identifier) -> ObjectMetadata:
        """Fetch user metadata, ACL and content type with one HEAD request."""
        headers = self._headers(identifier, utf8=True)
        response = self._send("HEAD", self._resource(identifier), headers=headers)
        return self._object_metadata(response)

    def list_user_metadata_tags(self, identifier: Identifier) -> MetadataTags:
        headers = self._headers(identifier, utf8=True)
        response = self._send("GET", self._resource(identifier), "metadata/tags", headers=headers)
        return hdr.decode_tags(response.headers, self.utf8)

    def get_listable_tags(self, tag: MetadataTag | str | None = None) -> MetadataTags:
        """List listable tag names, below ``tag`` when given."""
        headers = self._headers(utf8=True)
        if tag is not None:
            self._add_tags(headers, [tag])
        response = self._send("GET", f"{self.context}/objects", "listabletags", headers=headers)
        return hdr.decode_tags(response.headers, self.utf8)

    # -- ACL ------------------------------------------------------------------

    def get_acl(self, identifier: Identifier) -> Acl:
        response = self._send(
            "GET", self._resource(identifier), "acl", headers=self._headers(identifier)
        )
        return hdr.decode_acl(response.headers)

    def set_acl(self, identifier: Identifier, acl: Acl) -> None:
        headers = self._headers(identifier)
        headers.update(hdr.encode_acl(acl))
        self._send("POST", self._resource(identifier), "acl", headers=headers)

    # -- Listing --------------------------------------------------------------

    def _list_headers(self, options: ListOptions | None, include_meta_value: str) -> dict[str, str]:
        headers = self._headers(utf8=True)
        if options is None:
            return headers
        if options.include_metadata:
            headers["x-emc-include-meta"] = include_meta_value
            if options.system_metadata:
                headers["x-emc-system-tags"] = ",".join(options.system_metadata)
            if options.user_metadata:
                headers["x-emc-user-tags"] = ",".join(options.user_metadata)
        if options.limit > 0:
            headers["x-emc-limit"] = str(options.limit)
        if options.token is not None:
            headers[TOKEN] = options.token
        return headers

    def list_objects(
        self, tag: MetadataTag | str, options: ListOptions | None = None
    ) -> ListPage[ObjectResult]:
        """List one page of objects indexed under a listable tag.

        Returns:
            The page; ``page.token`` is set when more results remain.

        Raises:
            NotFound: The server reports an empty listing as code 1003.
        """
        if not tag:
            raise ValidationError("tag may not be empty")
        headers = self._list_headers(options, "1")
        self._add_tags(headers, [tag])
        response = self._send("GET", f"{self.context}/objects", headers=headers)
        items = xml_utils.parse_object_list_with_metadata(response.content)
        return ListPage(items, response.headers.get(TOKEN))

    def iter_objects(
        self, tag: MetadataTag | str, options: ListOptions | None = None
    ) -> Iterator[ObjectResult]:
        """Yield every object under ``tag``, following continuation tokens."""
        options = options or ListOptions()
        while True:
            page = self.list_objects(tag, options)
            yield from page.items
            if page.token is None:
                return
            options = options.with_token(page.token)

    def list_directory(
        self, path: ObjectPath, options: ListOptions | None = None
    ) -> ListPage[DirectoryEntry]:
        """List one page of a namespace directory.

        Raises:
            ValidationError: If ``path`` is not a directory (no trailing slash).
        """
        if not isinstance(path, ObjectPath) or not path.is_directory:
            raise ValidationError("list_directory must be called with a directory path")
        headers = self._list_headers(options, "true")
        response = self._send("GET", self._resource(path), headers=headers)
        items = xml_utils.parse_directory_list(response.content, path)
        return ListPage(items, response.headers.get(TOKEN))

    def iter_directory(
        self, path: ObjectPath, options: ListOptions | None = None
    ) -> Iterator[DirectoryEntry]:
        options = options or ListOptions()
        while True:
            page = self.list_directory(path, options)
            yield from page.items
            if page.token is None:
                return
            options = options.with_token(page.token)

    def query_objects(self, xquery: str) -> list[ObjectId]:
        """Run an XQuery against object metadata."""
        headers = self._headers()
        headers["x-emc-xquery"] = xquery
        response = self._send("GET", f"{self.context}/objects", headers=headers)
        return xml_utils.parse_object_list(response.content)

    # -- Versions -------------------------------------------------------------

    def list_versions(self, identifier: Identifier) -> list[ObjectId]:
        response = self._send(
            "GET", self._resource(identifier), "versions", headers=self._headers(identifier)
        )
        return xml_utils.parse_version_list(response.content)

    def version_object(self, identifier: Identifier) -> ObjectId:
        """Snapshot an object and return the ID of the new version."""
        response = self._send(
            "POST", self._resource(identifier), "versions", headers=self._headers(identifier)
        )
        return hdr.parse_location(response.headers.get("location"))

    def delete_version(self, version_id: ObjectId) -> None:
        self._send("DELETE", self._resource(version_id), "versions", headers=self._headers())

    def restore_version(self, identifier: ObjectId, version_id: ObjectId) -> None:
        """Replace an object's content and metadata with a version's."""
        headers = self._headers()
        headers["x-emc-version-oid"] = str(version_id)
        self._send("PUT", self._resource(identifier), "versions", headers=headers)

    # -- Namespace ------------------------------------------------------------

    def rename(self, source: ObjectPath, destination: ObjectPath, force: bool = False) -> None:
        """Rename a file or directory.

        Args:
            source: The current path.
            destination: The new path.
            force: Overwrite an existing destination. The overwrite is
                applied asynchronously by the server.
        """
        headers = self._headers(utf8=True)
        dest_path = str(destination).lstrip("/")
        headers["x-emc-path"] = hdr.utf8_encode(dest_path) if self.utf8 else dest_path
        if force:
            headers["x-emc-force"] = "true"
        self._send("POST", self._resource(source), "rename", headers=headers)

    def get_shareable_url(
        self,
        identifier: Identifier,
        expiration: datetime | int,
        disposition: str | None = None,
    ) -> str:
        """Build a pre-authenticated download URL. No request is sent.

        Args:
            identifier: An ObjectId or ObjectPath.
            expiration: Expiry as a datetime (naive means UTC) or Unix seconds.
            disposition: Content-Disposition the server should return.

        Raises:
            ValidationError: For ObjectKey identifiers.
        """
        if isinstance(identifier, ObjectKey):
            raise ValidationError("You cannot create a shareable URL with an object key")
        resource = self._resource(identifier)
        query = self._signer.shareable_query(resource, expiration, disposition)
        return (
            self._base_url(self._next_host())
            + urllib.parse.quote(resource, safe=_PATH_SAFE)
            + "?"
            + query
        )

    # -- Service --------------------------------------------------------------

    def get_object_info(self, identifier: Identifier) -> ObjectInfo:
        response = self._send(
            "GET", self._resource(identifier), "info", headers=self._headers(identifier)
        )
        return xml_utils.parse_object_info(response.content)

    def get_service_information(self) -> ServiceInformation:
        response = self._send("GET", f"{self.context}/service", headers=self._headers())
        return xml_utils.parse_service_information(response.content, response.headers)

    def calculate_server_offset(self) -> int:
        """Return the server clock minus the local clock, in whole seconds.

        The request is unsigned and any status is accepted, since error
        responses also carry a Date header. Returns 0 without a Date header.
        """
        response = self._send(
            "GET", f"{self.context}/", sign=False, raise_for_status=False
        )
        server_date = response.headers.get("date")
        if server_date is None:
            return 0
        try:
            server_time = parse_http_date(server_date)
        except (TypeError, ValueError) as exc:
            raise ParseError(f"Invalid Date header: {server_date}", body=server_date) from exc
        return int((server_time - utc_now()).total_seconds())

    # -- Access tokens --------------------------------------------------------

    @staticmethod
    def _token_id(token: str) -> str:
        """Accept a bare token ID or the token URL."""
        if "/" not in token:
            return token
        path = urllib.parse.urlparse(token).path
        return urllib.parse.unquote(path.rstrip("/").split("/")[-1])

    def create_access_token(
        self,
        identifier: ObjectId | ObjectPath | None = None,
        policy: Policy | None = None,
        acl: Acl | None = None,
    ) -> str:
        """Create an anonymous access token.

        Args:
            identifier: Object the token grants access to; None for an upload token.
            policy: Token restrictions.
            acl: ACL for objects created through the token.

        Returns:
            The token URL from the Location header.

        Raises:
            ValidationError: If ``identifier`` is an ObjectKey.
        """
        headers = self._headers()
        headers["Content-Type"] = "application/xml"
        if isinstance(identifier, ObjectId):
            headers["x-emc-objectid"] = str(identifier)
        elif isinstance(identifier, ObjectPath):
            headers["x-emc-path"] = str(identifier)
        elif identifier is not None:
            raise ValidationError("Only object ID and path are supported with access tokens")
        if acl is not None:
            headers.update(hdr.encode_acl(acl))
        body = xml_utils.render_policy(policy or Policy()).encode("utf-8")

        response = self._send("POST", f"{self.context}/accesstokens", headers=headers, content=body)
        location = response.headers.get("location")
        if not location:
            raise ParseError("Response has no Location header")
        if location.startswith(("http://", "https://")):
            return location
        return self._base_url(self._next_host()) + location

    def get_access_token(self, token: str) -> AccessToken:
        path = f"{self.context}/accesstokens/{self._token_id(token)}"
        response = self._send("GET", path, "info", headers=self._headers())
        return xml_utils.parse_access_token(response.content)

    def delete_access_token(self, token: str) -> None:
        path = f"{self.context}/accesstokens/{self._token_id(token)}"
        self._send("DELETE", path, headers=self._headers())

    def list_access_tokens(self, options: ListOptions | None = None) -> ListPage[AccessToken]:
        headers = self._headers()
        if options is not None:
            if options.limit > 0:
                headers["x-emc-limit"] = str(options.limit)
            if options.token is not None:
                headers[TOKEN] = options.token
        response = self._send("GET", f"{self.context}/accesstokens", headers=headers)
        items = xml_utils.parse_access_token_list(response.content)
        return ListPage(items, response.headers.get(TOKEN))

    def iter_access_tokens(self, options: ListOptions | None = None) -> Iterator[AccessToken]:
        options = options or ListOptions()
        while True:
            page = self.list_access_tokens(options)
            yield from page.items
            if page.token is None:
                return
            options = options.with_token(page.token)

    # -- Subtenants (ECS) -----------------------------------------------------

    def create_subtenant(self, replication_group_id: str | None = None) -> str:
        """Create a subtenant and return its ID."""
        headers = self._headers()
        if replication_group_id is not None:
            headers["x-emc-vpool"] = replication_group_id
        response = self._send("PUT", f"{self.context}/subtenant", headers=headers)
        subtenant_id = response.headers.get("subtenantID")
        if not subtenant_id:
            raise ParseError("Response has no subtenantID header")
        return subtenant_id

    def delete_subtenant(self, subtenant_id: str) -> None:
        self._send("DELETE", f"{self.context}/subtenant/{subtenant_id}", headers=self._headers())


class LoadBalancedAtmosClient(AtmosClient):
    """An AtmosClient that rotates requests across several hosts.

    Each request goes to the next host in turn. There is no health checking
    and no failover.
    """

    def __init__(self, hosts: list[str], uid: str, secret: str, **kwargs: Any) -> None:
        if not hosts:
            raise ValidationError("at least one host is required")
        super().__init__(hosts[0], uid, secret, **kwargs)
        self._hosts = list(hosts)
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def hosts(self) -> list[str]:
        return list(self._hosts)

    def _next_host(self) -> str:
        with self._lock:
            index = self._counter
            self._counter += 1
        return self._hosts[index % len(self._hosts)]
