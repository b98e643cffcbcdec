import abc
import datetime
import typing
import urllib.parse

from .query import OffsetBasedPagination, PageBasedPagination, Query
from .resource import Resource


class Router(metaclass=abc.ABCMeta):
    """
    A :py:class:`Router` builds the URLs requests are issued against.
    Given the same ``base_url``, the same input must always yield the same URL.
    """

    base_url: typing.Optional[str] = None

    @abc.abstractmethod
    def url_for_query(self, query: Query) -> str:
        ...  # pragma: nocover

    @abc.abstractmethod
    def url_for_resource_type(self, type_name: str) -> str:
        ...  # pragma: nocover

    @abc.abstractmethod
    def url_for_relationship(
        self,
        name: str,
        resource: Resource,
        ids: typing.Optional[typing.Sequence[str]] = None,
    ) -> str:
        ...  # pragma: nocover


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


def _render_filter_value(value: typing.Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    elif value is None:
        return "null"
    elif isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    elif isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(_render_filter_value(v) for v in value)
    else:
        return str(value)


class JSONAPIRouter(Router):
    """
    The default router, which follows the JSON:API conventions:

    * ``/articles`` and ``/articles/1,2`` for queries,
    * ``include``, ``filter[...]``, ``fields[...]``, ``sort`` and ``page[...]`` query parameters,
    * ``/articles/1/relationships/comments`` for relationships.
    """

    def _join(self, *segments: str) -> str:
        path = "/".join(_quote(s) for s in segments)
        if self.base_url is None:
            return "/" + path
        return self.base_url.rstrip("/") + "/" + path

    def _query_parameters(self, query: Query) -> typing.List[typing.Tuple[str, str]]:
        params: typing.List[typing.Tuple[str, str]] = []
        if query.includes:
            params.append(("include", ",".join(query.includes)))
        for filter_ in query.filters:
            key = (
                f"filter[{filter_.attribute}]"
                if filter_.operator == "eq"
                else f"filter[{filter_.attribute}][{filter_.operator}]"
            )
            params.append((key, _render_filter_value(filter_.value)))
        for type_name, names in query.fields:
            params.append((f"fields[{type_name}]", ",".join(names)))
        if query.sort_descriptors:
            params.append(
                (
                    "sort",
                    ",".join(
                        d.attribute if d.ascending else f"-{d.attribute}"
                        for d in query.sort_descriptors
                    ),
                )
            )
        if isinstance(query.pagination, PageBasedPagination):
            params.append(("page[number]", str(query.pagination.number)))
            params.append(("page[size]", str(query.pagination.size)))
        elif isinstance(query.pagination, OffsetBasedPagination):
            params.append(("page[offset]", str(query.pagination.offset)))
            params.append(("page[limit]", str(query.pagination.limit)))
        return params

    def url_for_query(self, query: Query) -> str:
        if query.resource_ids:
            url = self._join(query.resource_type) + "/" + ",".join(
                _quote(id) for id in query.resource_ids
            )
        else:
            url = self._join(query.resource_type)
        params = self._query_parameters(query)
        if params:
            url += "?" + urllib.parse.urlencode(
                params, safe="[],", quote_via=urllib.parse.quote
            )
        return url

    def url_for_resource_type(self, type_name: str) -> str:
        return self._join(type_name)

    def url_for_relationship(
        self,
        name: str,
        resource: Resource,
        ids: typing.Optional[typing.Sequence[str]] = None,
    ) -> str:
        if resource.id is None:
            raise ValueError(f"{resource.type} resource without an identifier has no relationship URL")
        url = self._join(resource.type, resource.id, "relationships", name)
        if ids:
            url += "/" + ",".join(_quote(id) for id in ids)
        return url

    def __init__(self, base_url: typing.Optional[str] = None):
        self.base_url = base_url
