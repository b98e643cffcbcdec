import dataclasses
import typing

from .resource import Resource

ResourceClassOrTypeName = typing.Union[typing.Type[Resource], str]


@dataclasses.dataclass(frozen=True)
class Filter:
    attribute: str
    value: typing.Any
    operator: str = "eq"


@dataclasses.dataclass(frozen=True)
class SortDescriptor:
    attribute: str
    ascending: bool = True


@dataclasses.dataclass(frozen=True)
class PageBasedPagination:
    number: int
    size: int


@dataclasses.dataclass(frozen=True)
class OffsetBasedPagination:
    offset: int
    limit: int


Pagination = typing.Union[PageBasedPagination, OffsetBasedPagination]


@dataclasses.dataclass(frozen=True, init=False)
class Query:
    """
    An immutable description of a fetch.

    .. code-block:: python

       Query(Article)                      # every article
       Query(Article, ["1", "2"])          # articles 1 and 2
       Query.for_resource(article)         # the very article
       Query(Article).include("author").where("status", "published").sort_by("created", False)

    Every refinement returns a new :py:class:`Query`.
    """

    resource_type: str
    resource_class: typing.Optional[typing.Type[Resource]] = None
    resource_ids: typing.Tuple[str, ...] = ()
    includes: typing.Tuple[str, ...] = ()
    filters: typing.Tuple[Filter, ...] = ()
    fields: typing.Tuple[typing.Tuple[str, typing.Tuple[str, ...]], ...] = ()
    sort_descriptors: typing.Tuple[SortDescriptor, ...] = ()
    pagination: typing.Optional[Pagination] = None

    @classmethod
    def for_resource(cls, resource: Resource) -> "Query":
        """
        Builds a query that looks up the given resource.
        """
        if resource.id is None:
            raise ValueError(f"cannot query {resource.type} resource without an identifier")
        return cls(type(resource), [resource.id], resource_type_name=resource.type)

    def include(self, *relationship_names: str) -> "Query":
        return dataclasses.replace(self, includes=self.includes + tuple(relationship_names))

    def where(self, attribute: str, value: typing.Any, operator: str = "eq") -> "Query":
        return dataclasses.replace(
            self, filters=self.filters + (Filter(attribute, value, operator),)
        )

    def restrict_fields_to(self, *names: str, type_name: typing.Optional[str] = None) -> "Query":
        type_name = self.resource_type if type_name is None else type_name
        fields = tuple((k, v) for k, v in self.fields if k != type_name)
        existing = dict(self.fields).get(type_name, ())
        return dataclasses.replace(self, fields=fields + ((type_name, existing + tuple(names)),))

    def sort_by(self, attribute: str, ascending: bool = True) -> "Query":
        return dataclasses.replace(
            self,
            sort_descriptors=self.sort_descriptors + (SortDescriptor(attribute, ascending),),
        )

    def paginate(self, pagination: typing.Optional[Pagination]) -> "Query":
        return dataclasses.replace(self, pagination=pagination)

    def __init__(
        self,
        resource_type: ResourceClassOrTypeName,
        resource_ids: typing.Optional[typing.Iterable[str]] = None,
        *,
        resource_class: typing.Optional[typing.Type[Resource]] = None,
        resource_type_name: typing.Optional[str] = None,
        includes: typing.Iterable[str] = (),
        filters: typing.Iterable[Filter] = (),
        fields: typing.Iterable[typing.Tuple[str, typing.Tuple[str, ...]]] = (),
        sort_descriptors: typing.Iterable[SortDescriptor] = (),
        pagination: typing.Optional[Pagination] = None,
    ):
        if isinstance(resource_type, str):
            type_name = resource_type
        else:
            resource_class = resource_type
            if resource_type_name is not None:
                type_name = resource_type_name
            else:
                schema = getattr(resource_type, "resource_type", None)
                if schema is None:
                    raise TypeError(f"{resource_type.__name__} declares no resource_type")
                type_name = schema.name
        # the instance is frozen
        object.__setattr__(self, "resource_type", type_name)
        object.__setattr__(self, "resource_class", resource_class)
        object.__setattr__(self, "resource_ids", tuple(resource_ids or ()))
        object.__setattr__(self, "includes", tuple(includes))
        object.__setattr__(self, "filters", tuple(filters))
        object.__setattr__(self, "fields", tuple(fields))
        object.__setattr__(self, "sort_descriptors", tuple(sort_descriptors))
        object.__setattr__(self, "pagination", pagination)
