"""Value objects shared by requests and responses.

These types are short-lived: they are built per call, passed to the client
and discarded. None of them holds a reference to a connection.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from atmosclient.errors import ValidationError


@dataclass(frozen=True)
class Extent:
    """A byte range ``(offset, size)`` of object content.

    Attributes:
        offset: First byte of the range.
        size: Number of bytes in the range.
    """

    offset: int
    size: int

    @property
    def end(self) -> int:
        """Inclusive offset of the last byte."""
        return self.offset + self.size - 1

    def to_range_spec(self) -> str:
        """Render as ``start-end`` for a Range header."""
        return f"{self.offset}-{self.end}"

    def is_all_content(self) -> bool:
        return self == ALL_CONTENT


# Sentinel meaning "the entire object"
ALL_CONTENT = Extent(-1, -1)


def range_header(extents: Iterable[Extent]) -> str:
    """Build the Atmos ``Range`` header value for one or more extents.

    Atmos expects the unit spelled ``Bytes``.

    Raises:
        ValidationError: If no extent is given or an extent is empty/negative.
    """
    specs = []
    for extent in extents:
        if extent.offset < 0 or extent.size <= 0:
            raise ValidationError(f"Invalid extent: offset={extent.offset} size={extent.size}")
        specs.append(extent.to_range_spec())
    if not specs:
        raise ValidationError("You must specify at least one extent")
    return "Bytes=" + ",".join(specs)


# -- Metadata -----------------------------------------------------------------


class Metadata:
    """A single metadata entry.

    The name is fixed at construction; the value and listable flag may change.
    """

    __slots__ = ("_name", "value", "listable")

    def __init__(self, name: str, value: str | None = "", listable: bool = False) -> None:
        if not name:
            raise ValidationError("metadata name may not be empty")
        self._name = name
        self.value = "" if value is None else value
        self.listable = listable

    @property
    def name(self) -> str:
        return self._name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Metadata):
            return NotImplemented
        return (self._name, self.value, self.listable) == (other._name, other.value, other.listable)

    def __hash__(self) -> int:
        return hash(self._name)

    def __repr__(self) -> str:
        return f"Metadata({self._name!r}, {self.value!r}, listable={self.listable})"

    def __str__(self) -> str:
        return f"{self._name}={self.value}"


class MetadataList:
    """Metadata entries keyed by name.

    Lookup is by name. Iteration follows insertion order, which is the
    order entries are serialized in request headers. Adding an entry whose
    name already exists replaces it in place.

    Attributes:
        expiration_period: Optional ``x-emc-expiration-period`` in seconds.
        retention_period: Optional ``x-emc-retention-period`` in seconds.
    """

    def __init__(
        self,
        entries: Iterable[Metadata] = (),
        expiration_period: int | None = None,
        retention_period: int | None = None,
    ) -> None:
        self._entries: dict[str, Metadata] = {}
        for entry in entries:
            self.add(entry)
        self.expiration_period = expiration_period
        self.retention_period = retention_period

    def add(self, metadata: Metadata) -> None:
        self._entries[metadata.name] = metadata

    def set(self, name: str, value: str, listable: bool = False) -> Metadata:
        """Add or replace an entry and return it."""
        entry = Metadata(name, value, listable)
        self.add(entry)
        return entry

    def get(self, name: str) -> Metadata | None:
        return self._entries.get(name)

    def remove(self, name: str) -> None:
        self._entries.pop(name, None)

    def names(self) -> list[str]:
        return list(self._entries)

    def listable(self) -> list[Metadata]:
        return [m for m in self._entries.values() if m.listable]

    def non_listable(self) -> list[Metadata]:
        return [m for m in self._entries.values() if not m.listable]

    def to_dict(self) -> dict[str, str]:
        """Return a plain ``{name: value}`` mapping."""
        return {name: m.value for name, m in self._entries.items()}

    def __getitem__(self, name: str) -> Metadata:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[Metadata]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetadataList):
            return NotImplemented
        return (
            self._entries == other._entries
            and self.expiration_period == other.expiration_period
            and self.retention_period == other.retention_period
        )

    def __repr__(self) -> str:
        return f"MetadataList({list(self._entries.values())!r})"


@dataclass(frozen=True)
class MetadataTag:
    """A metadata name without a value, used to select or list tags."""

    name: str
    listable: bool = False


class MetadataTags:
    """An ordered set of metadata tag names."""

    def __init__(self, tags: Iterable[MetadataTag | str] = ()) -> None:
        self._tags: dict[str, MetadataTag] = {}
        for tag in tags:
            self.add(tag)

    def add(self, tag: MetadataTag | str) -> None:
        if isinstance(tag, str):
            tag = MetadataTag(tag)
        self._tags[tag.name] = tag

    def get(self, name: str) -> MetadataTag | None:
        return self._tags.get(name)

    def remove(self, name: str) -> None:
        self._tags.pop(name, None)

    def names(self) -> list[str]:
        return list(self._tags)

    def __contains__(self, name: object) -> bool:
        return name in self._tags

    def __iter__(self) -> Iterator[MetadataTag]:
        return iter(list(self._tags.values()))

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetadataTags):
            return NotImplemented
        return self._tags == other._tags

    def __repr__(self) -> str:
        return f"MetadataTags({self.names()!r})"


# -- Access control -----------------------------------------------------------


class GranteeType(Enum):
    USER = "USER"
    GROUP = "GROUP"


class Permission:
    """Permission names understood by the server."""

    NONE = "NONE"
    READ = "READ"
    WRITE = "WRITE"
    FULL_CONTROL = "FULL_CONTROL"

    ALL = (NONE, READ, WRITE, FULL_CONTROL)

    # Legacy spelling still returned by some servers in ACL headers
    LEGACY_FULL = "FULL"

    @classmethod
    def normalize(cls, value: str) -> str:
        value = value.strip()
        if value == cls.LEGACY_FULL:
            return cls.FULL_CONTROL
        return value


@dataclass(frozen=True)
class Grantee:
    """A user or group that can receive a permission."""

    name: str
    type: GranteeType = GranteeType.USER

    @classmethod
    def user(cls, name: str) -> Grantee:
        return cls(name, GranteeType.USER)

    @classmethod
    def group(cls, name: str) -> Grantee:
        return cls(name, GranteeType.GROUP)

    def __str__(self) -> str:
        return self.name


# The well-known group covering everyone who is not the owner
OTHER = Grantee("other", GranteeType.GROUP)


@dataclass(frozen=True)
class Grant:
    """A (grantee, permission) pair."""

    grantee: Grantee
    permission: str

    def __str__(self) -> str:
        return f"{self.grantee.name}={self.permission}"


class Acl:
    """A set of grants.

    Equality is set equality: two ACLs holding the same grants are equal
    whatever order the grants were added in.
    """

    def __init__(self, grants: Iterable[Grant] = ()) -> None:
        # dict used as an insertion-ordered set
        self._grants: dict[Grant, None] = {}
        for grant in grants:
            self.add(grant)

    def add(self, grant: Grant) -> None:
        self._grants[grant] = None

    def grant(self, grantee: Grantee, permission: str) -> Acl:
        """Add a grant and return self for chaining."""
        self.add(Grant(grantee, permission))
        return self

    def remove(self, grant: Grant) -> None:
        self._grants.pop(grant, None)

    def clear(self) -> None:
        self._grants.clear()

    def user_grants(self) -> list[Grant]:
        return [g for g in self._grants if g.grantee.type is GranteeType.USER]

    def group_grants(self) -> list[Grant]:
        return [g for g in self._grants if g.grantee.type is GranteeType.GROUP]

    def __contains__(self, grant: object) -> bool:
        return grant in self._grants

    def __iter__(self) -> Iterator[Grant]:
        return iter(list(self._grants))

    def __len__(self) -> int:
        return len(self._grants)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Acl):
            return NotImplemented
        return set(self._grants) == set(other._grants)

    def __hash__(self) -> int:
        return hash(frozenset(self._grants))

    def __str__(self) -> str:
        return ", ".join(str(g) for g in self._grants)

    def __repr__(self) -> str:
        return f"Acl([{', '.join(repr(g) for g in self._grants)}])"
