import collections.abc
import dataclasses
import typing

from .models import AttributeKind, ResourceMemberDescriptor, ResourceType
from .serde.models import LinksRepr


def is_same_resource(a: "Resource", b: "Resource") -> bool:
    """
    Tells whether two resource objects denote the same server-side resource.
    Resources without an identifier are only ever the same as themselves.
    """
    if a is b:
        return True
    return a.id is not None and a.type == b.type and a.id == b.id


def _index_of(resources: typing.Sequence["Resource"], resource: "Resource") -> int:
    for i, r in enumerate(resources):
        if is_same_resource(r, resource):
            return i
    return -1


class LinkedResourceCollection(collections.abc.Sequence):
    """
    The value of a to-many relationship.

    Besides the linked resources, it records the resources added to and removed from the
    relationship since it was last synchronized with the server.  Those records are cleared
    only after the corresponding relationship operation has succeeded.
    """

    links: typing.Optional[LinksRepr] = None
    _resources: typing.List["Resource"]
    _added: typing.List["Resource"]
    _removed: typing.List["Resource"]

    @property
    def resources(self) -> typing.Sequence["Resource"]:
        return tuple(self._resources)

    @property
    def added_resources(self) -> typing.Sequence["Resource"]:
        return tuple(self._added)

    @property
    def removed_resources(self) -> typing.Sequence["Resource"]:
        return tuple(self._removed)

    @property
    def has_changes(self) -> bool:
        return bool(self._added or self._removed)

    def __getitem__(self, index):
        return self._resources[index]

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, resource) -> bool:
        return isinstance(resource, Resource) and _index_of(self._resources, resource) >= 0

    def link(self, resource: "Resource") -> None:
        """
        Links the resource without recording it as an addition.
        """
        if resource not in self:
            self._resources.append(resource)

    def unlink(self, resource: "Resource") -> None:
        """
        Unlinks the resource without recording it as a removal.
        """
        i = _index_of(self._resources, resource)
        if i >= 0:
            del self._resources[i]

    def add(self, resource: "Resource") -> None:
        """
        Links the resource and records it as added.
        """
        self.link(resource)
        i = _index_of(self._removed, resource)
        if i >= 0:
            del self._removed[i]
        elif _index_of(self._added, resource) < 0:
            self._added.append(resource)

    def remove(self, resource: "Resource") -> None:
        """
        Unlinks the resource and records it as removed.
        """
        self.unlink(resource)
        i = _index_of(self._added, resource)
        if i >= 0:
            del self._added[i]
        elif _index_of(self._removed, resource) < 0:
            self._removed.append(resource)

    def replace_linkage(self, resources: typing.Iterable["Resource"]) -> None:
        """
        Replaces the linked resources with what the server reported, keeping the
        local additions and removals that are yet to be synchronized.
        """
        self._resources = []
        for resource in resources:
            if _index_of(self._removed, resource) < 0:
                self.link(resource)
        for resource in self._added:
            self.link(resource)

    def mark_added_synced(self) -> None:
        self._added = []

    def mark_removed_synced(self) -> None:
        self._removed = []

    def __repr__(self) -> str:
        return f"LinkedResourceCollection({self._resources!r}, added={self._added!r}, removed={self._removed!r})"

    def __init__(self, resources: typing.Iterable["Resource"] = ()):
        self._resources = list(resources)
        self._added = []
        self._removed = []


class Resource:
    """
    A :py:class:`Resource` mirrors a server-side resource.

    Concrete resource classes declare their schema as the ``resource_type`` class attribute:

    .. code-block:: python

       class Article(Resource):
           resource_type = ResourceType(
               "articles",
               [
                   ResourceAttributeDescriptor("title"),
                   ResourceToOneRelationshipDescriptor("author", "people"),
                   ResourceToManyRelationshipDescriptor("comments", "comments"),
               ],
           )

    Values are accessed by attribute name with the subscript operator.  Writing a value marks
    the attribute dirty, so that an update only sends what has changed.
    """

    resource_type: ResourceType
    is_loaded: bool
    """
    :py:const:`True` once the resource has been populated from a server response.
    """
    links: typing.Optional[LinksRepr]
    meta: typing.Dict[str, typing.Any]
    _id: typing.Optional[str]
    _values: typing.Dict[str, typing.Any]
    _dirty: typing.Set[str]

    @property
    def type(self) -> str:
        return self.resource_type.name

    @property
    def id(self) -> typing.Optional[str]:
        return self._id

    @id.setter
    def id(self, value: typing.Optional[str]) -> None:
        if self._id is not None and value != self._id:
            raise ValueError(
                f"identifier of {self.type} {self._id} cannot be changed to {value}"
            )
        self._id = value

    @property
    def dirty_attributes(self) -> typing.FrozenSet[str]:
        return frozenset(self._dirty)

    def is_dirty(self, name: str) -> bool:
        return name in self._dirty

    def mark_clean(self) -> None:
        self._dirty.clear()

    def _member(self, name: str) -> ResourceMemberDescriptor:
        try:
            return self.resource_type.member(name)
        except KeyError:
            raise KeyError(f'no attribute "{name}" is declared in "{self.type}"') from None

    def __getitem__(self, name: str) -> typing.Any:
        self._member(name)
        return self._values[name]

    def __setitem__(self, name: str, value: typing.Any) -> None:
        member = self._member(name)
        if member.kind is AttributeKind.TO_MANY:
            raise TypeError(
                f"to-many relationship ({name}) cannot be assigned; use add() or remove() on it"
            )
        elif member.kind is AttributeKind.TO_ONE:
            if value is not None and not isinstance(value, Resource):
                raise TypeError(f"to-one relationship ({name}) takes a resource or None")
        self._values[name] = value
        self._dirty.add(name)

    def populate(self, name: str, value: typing.Any) -> None:
        """
        Stores a value that came from the server, clearing the dirty mark of the attribute.
        """
        member = self._member(name)
        if member.kind is AttributeKind.TO_MANY:
            self._values[name].replace_linkage(value)
        else:
            self._values[name] = value
        self._dirty.discard(name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type}:{self._id}{'' if self.is_loaded else ' (not loaded)'}>"

    def __init__(
        self, id: typing.Optional[str] = None, resource_type: typing.Optional[ResourceType] = None
    ):
        if resource_type is not None:
            self.resource_type = resource_type
        elif not isinstance(getattr(self, "resource_type", None), ResourceType):
            raise TypeError(f"{type(self).__name__} declares no resource_type")
        self._id = id
        self.is_loaded = False
        self.links = None
        self.meta = {}
        self._dirty = set()
        self._values = {}
        for member in self.resource_type.members:
            if member.kind is AttributeKind.TO_MANY:
                self._values[member.name] = LinkedResourceCollection()
            else:
                self._values[member.name] = None


@dataclasses.dataclass
class PaginationData:
    """
    Pagination links and meta information of a fetched collection.
    """

    self_: typing.Optional[str] = None
    next: typing.Optional[str] = None
    prev: typing.Optional[str] = None
    first: typing.Optional[str] = None
    last: typing.Optional[str] = None
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)


class ResourceCollection(collections.abc.Sequence):
    """
    The result of a fetch.
    """

    resources: typing.Sequence[Resource]
    pagination: typing.Optional[PaginationData]

    def __getitem__(self, index):
        return self.resources[index]

    def __len__(self) -> int:
        return len(self.resources)

    def __repr__(self) -> str:
        return f"ResourceCollection({list(self.resources)!r})"

    def __init__(
        self,
        resources: typing.Iterable[Resource],
        pagination: typing.Optional[PaginationData] = None,
    ):
        self.resources = tuple(resources)
        self.pagination = pagination
