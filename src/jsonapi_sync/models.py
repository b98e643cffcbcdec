import enum
import typing
from collections import OrderedDict


class AttributeKind(enum.Enum):
    PLAIN = "plain"
    TO_ONE = "to_one"
    TO_MANY = "to_many"


class ResourceMemberDescriptor:
    parent: typing.Optional["ResourceType"] = None
    name: str
    serialized_name: str
    kind: typing.ClassVar[AttributeKind]

    T = typing.TypeVar("T", bound="ResourceMemberDescriptor")

    @property
    def is_relationship(self) -> bool:
        return self.kind is not AttributeKind.PLAIN

    def bind(self: T, parent: "ResourceType") -> T:
        if self.parent is not None and self.parent is not parent:
            raise ValueError(
                f"attribute ({self.name}) is already declared by \"{self.parent.name}\""
            )
        self.parent = parent
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, serialized_name={self.serialized_name!r})"

    def __init__(self, name: str, serialized_name: typing.Optional[str] = None):
        self.name = name
        self.serialized_name = serialized_name if serialized_name is not None else name


class ResourceAttributeDescriptor(ResourceMemberDescriptor):
    kind = AttributeKind.PLAIN
    type: typing.Optional[typing.Type]
    """
    The native type of the attribute's value.  A transformer registered for the type
    converts values from and to the wire.  :py:const:`None` lets values pass through.
    """
    read_only: bool
    """
    Set to :py:const:`True` if the attribute is never sent to the server.
    """

    def __init__(
        self,
        name: str,
        type: typing.Optional[typing.Type] = None,
        serialized_name: typing.Optional[str] = None,
        read_only: bool = False,
    ):
        super().__init__(name, serialized_name)
        self.type = type
        self.read_only = read_only


class ResourceRelationshipDescriptor(ResourceMemberDescriptor):
    linked_type: str
    """
    The name of the resource type on the other side of the relationship.
    """

    def __init__(
        self,
        name: str,
        linked_type: str,
        serialized_name: typing.Optional[str] = None,
    ):
        super().__init__(name, serialized_name)
        self.linked_type = linked_type


class ResourceToOneRelationshipDescriptor(ResourceRelationshipDescriptor):
    kind = AttributeKind.TO_ONE


class ResourceToManyRelationshipDescriptor(ResourceRelationshipDescriptor):
    kind = AttributeKind.TO_MANY


class ResourceType:
    """
    A :py:class:`ResourceType` is the static schema of a JSON:API resource type.

    Plain attributes and relationships share a single namespace and keep their declaration order,
    which is the order relationship operations are issued in when a resource gets saved.

    :param str name: The name of the resource type as it appears on the wire.
    :param Iterable[ResourceMemberDescriptor] attributes: The descriptors for the attributes and relationships.
    """

    name: str
    """
    The name of the resource type.
    """
    _members: typing.MutableMapping[str, ResourceMemberDescriptor]
    _serialized_names: typing.MutableMapping[str, ResourceMemberDescriptor]

    @property
    def members(self) -> typing.Sequence[ResourceMemberDescriptor]:
        """
        Every declared attribute and relationship in declaration order.
        """
        return tuple(self._members.values())

    @property
    def attributes(self) -> typing.Sequence[ResourceAttributeDescriptor]:
        """
        The plain attributes in declaration order.
        """
        return tuple(
            typing.cast(ResourceAttributeDescriptor, m)
            for m in self._members.values()
            if not m.is_relationship
        )

    @property
    def relationships(self) -> typing.Sequence[ResourceRelationshipDescriptor]:
        """
        The to-one and to-many relationships in declaration order.
        """
        return tuple(
            typing.cast(ResourceRelationshipDescriptor, m)
            for m in self._members.values()
            if m.is_relationship
        )

    def member(self, name: str) -> ResourceMemberDescriptor:
        """
        Looks up a declared attribute or relationship by its name.

        :raises KeyError: if nothing is declared under the name.
        """
        return self._members[name]

    def member_by_serialized_name(
        self, serialized_name: str
    ) -> typing.Optional[ResourceMemberDescriptor]:
        return self._serialized_names.get(serialized_name)

    def add_attribute(self, attr: ResourceMemberDescriptor) -> None:
        """
        Add an attribute or a relationship to the resource type.

        :param ResourceMemberDescriptor attr: the attribute to add.
        """
        name = attr.name
        if name in self._members:
            raise ValueError(f'attribute ({name}) is declared twice in "{self.name}"')
        if attr.serialized_name in self._serialized_names:
            raise ValueError(
                f'serialized name ({attr.serialized_name}) is declared twice in "{self.name}"'
            )
        self._members[name] = attr.bind(self)
        self._serialized_names[attr.serialized_name] = attr

    def __repr__(self) -> str:
        return f"ResourceType({self.name!r})"

    def __init__(
        self,
        name: str,
        attributes: typing.Iterable[ResourceMemberDescriptor] = (),
    ) -> None:
        self.name = name
        self._members = OrderedDict()
        self._serialized_names = {}
        for attr in attributes:
            self.add_attribute(attr)
