"""Object locators for the Atmos REST interface.

An object is addressed in one of three ways, each mapping to its own URL
template under the REST context (usually ``/rest``):

    - ``ObjectId``:   ``{ctx}/objects/{id}``
    - ``ObjectPath``: ``{ctx}/namespace{path}``
    - ``ObjectKey``:  ``{ctx}/namespace/{key}`` plus an ``x-emc-pool`` header
"""

import re

from atmosclient.errors import ValidationError

# Object IDs are lowercase hex plus hyphens, at least 44 characters
_OBJECT_ID_RE = re.compile(r"[0-9a-f-]{44,}")


class Identifier:
    """Base class of all object locators."""

    def resource_path(self, context: str) -> str:
        """Return the unencoded request path for this locator."""
        raise NotImplementedError

    def extra_headers(self) -> dict[str, str]:
        """Headers the locator adds to every request that targets it."""
        return {}


class ObjectId(Identifier):
    """A server-assigned object identifier."""

    __slots__ = ("_id",)

    def __init__(self, object_id: str) -> None:
        """Validate and wrap an object ID.

        Raises:
            ValidationError: If the string is not a well-formed object ID.
        """
        if not isinstance(object_id, str) or not _OBJECT_ID_RE.fullmatch(object_id):
            raise ValidationError(f"{object_id!r} is not a valid object id")
        self._id = object_id

    def resource_path(self, context: str) -> str:
        return f"{context}/objects/{self._id}"

    def __str__(self) -> str:
        return self._id

    def __repr__(self) -> str:
        return f"ObjectId({self._id!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectId):
            return other._id == self._id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._id)


class ObjectPath(Identifier):
    """A file or directory in the namespace interface.

    Directory paths end with a slash. A leading slash is added when missing.
    """

    __slots__ = ("_path",)

    def __init__(self, path: str) -> None:
        if not path:
            raise ValidationError("path may not be empty")
        if not path.startswith("/"):
            path = "/" + path
        self._path = path

    def resource_path(self, context: str) -> str:
        return f"{context}/namespace{self._path}"

    @property
    def is_directory(self) -> bool:
        return self._path.endswith("/")

    @property
    def name(self) -> str:
        """Last path component, without the trailing slash of a directory."""
        stripped = self._path[:-1] if self._path.endswith("/") else self._path
        return stripped[stripped.rfind("/") + 1:]

    def child(self, name: str, directory: bool = False) -> "ObjectPath":
        """Return the path of an entry inside this directory."""
        base = self._path if self._path.endswith("/") else self._path + "/"
        return ObjectPath(base + name + ("/" if directory else ""))

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"ObjectPath({self._path!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectPath):
            return other._path == self._path
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._path)


class ObjectKey(Identifier):
    """An object addressed by (pool, key) on ECS."""

    __slots__ = ("pool", "key")

    def __init__(self, pool: str, key: str) -> None:
        if not pool or not key:
            raise ValidationError("pool and key are both required")
        self.pool = pool
        self.key = key

    def resource_path(self, context: str) -> str:
        return f"{context}/namespace/{self.key}"

    def extra_headers(self) -> dict[str, str]:
        return {"x-emc-pool": self.pool}

    def __str__(self) -> str:
        return f"{self.pool}/{self.key}"

    def __repr__(self) -> str:
        return f"ObjectKey(pool={self.pool!r}, key={self.key!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectKey):
            return other.pool == self.pool and other.key == self.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.pool, self.key))
