"""
Wire-level representation of JSON:API documents.

The classes mirror the document structure node by node and know nothing about
:py:class:`jsonapi_sync.resource.Resource`.  Every node read by the parser remembers the
JSON pointer it came from as ``_source_``, which takes no part in comparisons.

All of them are meant to be constructed with keyword arguments.
"""

import dataclasses
import typing

from .utils import JSONPointer

#: Link names as they appear on the wire, mapped to the attributes of :py:class:`LinksRepr`.
LINK_NAMES = {
    "self": "self_",
    "related": "related",
    "next": "next",
    "prev": "prev",
    "first": "first",
    "last": "last",
}

#: The string members of an error object.
ERROR_MEMBERS = ("id", "status", "code", "title", "detail")


class MissingType:
    """
    The type of :py:data:`Missing`, which tells an absent property from one whose value is ``null``.
    """

    def __bool__(self):
        return False

    def __repr__(self):
        return "Missing"

    def __init__(self):
        raise TypeError("Not directly instantiable")


Missing = object.__new__(MissingType)


@dataclasses.dataclass
class Repr:
    _source_: typing.Optional[JSONPointer] = dataclasses.field(
        default=None, compare=False, repr=False
    )


@dataclasses.dataclass
class LinksRepr(Repr):
    self_: typing.Optional[str] = None
    related: typing.Optional[str] = None
    next: typing.Optional[str] = None
    prev: typing.Optional[str] = None
    first: typing.Optional[str] = None
    last: typing.Optional[str] = None


@dataclasses.dataclass
class ResourceIdRepr(Repr):
    """
    A resource identifier object, the building block of linkage.
    """

    type: str = ""
    id: str = ""
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)


LinkageData = typing.Union[None, ResourceIdRepr, typing.Sequence[ResourceIdRepr]]


@dataclasses.dataclass
class LinkageRepr(Repr):
    """
    A relationship object.  ``data`` is :py:data:`Missing` when the server sent only links
    or meta, in which case nothing is known about the linkage.
    """

    data: typing.Union[LinkageData, MissingType] = Missing
    links: typing.Optional[LinksRepr] = None
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return self.data is not Missing


@dataclasses.dataclass
class ResourceRepr(Repr):
    """
    A resource object.  ``id`` is :py:const:`None` for a resource that is about to be created.
    Attribute values are JSON-compatible, dates, decimals or bytes.
    """

    type: str = ""
    id: typing.Optional[str] = None
    attributes: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    relationships: typing.Dict[str, LinkageRepr] = dataclasses.field(default_factory=dict)
    links: typing.Optional[LinksRepr] = None
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __getitem__(self, name: str) -> typing.Any:
        return self.attributes[name]


@dataclasses.dataclass
class SourceRepr(Repr):
    pointer: typing.Optional[str] = None
    parameter: typing.Optional[str] = None


@dataclasses.dataclass
class ErrorRepr(Repr):
    """
    An error object.  ``status`` is always a string, even if the server sent a number.
    """

    id: typing.Optional[str] = None
    status: typing.Optional[str] = None
    code: typing.Optional[str] = None
    title: typing.Optional[str] = None
    detail: typing.Optional[str] = None
    source: typing.Optional[SourceRepr] = None
    links: typing.Optional[LinksRepr] = None
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)


PrimaryData = typing.Union[None, ResourceRepr, typing.Sequence[ResourceRepr]]


@dataclasses.dataclass
class DocumentRepr(Repr):
    """
    A top-level document whose primary data, if any, is a single resource object,
    ``null``, or an array of resource objects.
    """

    data: typing.Union[PrimaryData, MissingType] = Missing
    included: typing.Sequence[ResourceRepr] = ()
    errors: typing.Sequence[ErrorRepr] = ()
    jsonapi: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    links: typing.Optional[LinksRepr] = None
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)

    @property
    def is_collection(self) -> bool:
        return isinstance(self.data, (list, tuple))

    @property
    def primary_resources(self) -> typing.Sequence[ResourceRepr]:
        if isinstance(self.data, ResourceRepr):
            return (self.data,)
        elif isinstance(self.data, (list, tuple)):
            return tuple(self.data)
        return ()


@dataclasses.dataclass
class LinkageDocumentRepr(Repr):
    """
    The body of a request against a relationship endpoint.
    """

    data: LinkageData = None
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
