"""
Rendering of representation objects into JSON-compatible values, ready for :py:func:`json.dumps`.

.. code-block:: python

   from jsonapi_sync.serde.models import DocumentRepr, LinkageRepr, ResourceIdRepr, ResourceRepr
   from jsonapi_sync.serde.renderer import ReprRenderer

   renderer = ReprRenderer()
   renderer(
       DocumentRepr(
           data=ResourceRepr(
               type="articles",
               attributes={"title": "JSON:API paints my bikeshed!"},
               relationships={
                   "author": LinkageRepr(data=ResourceIdRepr(type="people", id="9")),
               },
           ),
       )
   )
"""

import base64
import collections.abc
import datetime
import decimal
import typing

from .models import (
    ERROR_MEMBERS,
    LINK_NAMES,
    DocumentRepr,
    ErrorRepr,
    LinkageData,
    LinkageDocumentRepr,
    LinkageRepr,
    LinksRepr,
    ResourceIdRepr,
    ResourceRepr,
)
from .types import JSONScalar, JSONValue, MutableJSONObject
from .utils import JSONPointer


class ReprRenderer:
    """
    Besides JSON-compatible values, attribute values may be date-times (rendered in UTC),
    dates, decimals and bytes (rendered in base64).

    :param bool render_decimal_as_str: render decimals as strings rather than numbers, so that no precision is lost.
    :param Optional[tzinfo] assume_naive_timezone_as: the timezone of naive date-times, which are rejected if not given.
    """

    _render_decimal_as_str: bool
    _assume_naive_timezone_as: typing.Optional[datetime.tzinfo]

    def _render_scalar(self, path: JSONPointer, value: typing.Any) -> JSONScalar:
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        elif isinstance(value, datetime.datetime):
            if value.tzinfo is None:
                if self._assume_naive_timezone_as is None:
                    raise ValueError(f"{path}: naive datetime {value}")
                value = value.replace(tzinfo=self._assume_naive_timezone_as)
            return value.astimezone(datetime.timezone.utc).isoformat()
        elif isinstance(value, datetime.date):
            return value.isoformat()
        elif isinstance(value, decimal.Decimal):
            return str(value) if self._render_decimal_as_str else float(value)
        elif isinstance(value, bytes):
            return base64.b64encode(value).decode("ascii")
        raise TypeError(f"{path}: unsupported type {value!r}")

    def _render_value(self, path: JSONPointer, value: typing.Any) -> JSONValue:
        if isinstance(value, collections.abc.Mapping):
            return {k: self._render_value(path / k, v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            return [self._render_value(path / i, v) for i, v in enumerate(value)]
        return self._render_scalar(path, value)

    def _render_links(self, repr_: LinksRepr) -> MutableJSONObject:
        retval: MutableJSONObject = {}
        for name, attr in LINK_NAMES.items():
            href = getattr(repr_, attr)
            if href is not None:
                retval[name] = href
        return retval

    def _render_resource_id(self, repr_: ResourceIdRepr) -> MutableJSONObject:
        retval: MutableJSONObject = {"type": repr_.type, "id": repr_.id}
        if repr_.meta:
            retval["meta"] = dict(repr_.meta)
        return retval

    def _render_linkage_data(self, data: LinkageData) -> JSONValue:
        if data is None:
            return None
        elif isinstance(data, ResourceIdRepr):
            return self._render_resource_id(data)
        return [self._render_resource_id(item) for item in data]

    def _render_relationship(self, repr_: LinkageRepr) -> MutableJSONObject:
        retval: MutableJSONObject = {}
        if repr_.has_data:
            retval["data"] = self._render_linkage_data(typing.cast(LinkageData, repr_.data))
        if repr_.links is not None:
            retval["links"] = self._render_links(repr_.links)
        if repr_.meta:
            retval["meta"] = dict(repr_.meta)
        return retval

    def _render_resource(self, path: JSONPointer, repr_: ResourceRepr) -> MutableJSONObject:
        retval: MutableJSONObject = {"type": repr_.type}
        # no identifier for a resource about to be created
        if repr_.id is not None:
            retval["id"] = repr_.id
        if repr_.attributes:
            retval["attributes"] = self._render_value(path / "attributes", repr_.attributes)
        if repr_.relationships:
            retval["relationships"] = {
                name: self._render_relationship(linkage)
                for name, linkage in repr_.relationships.items()
            }
        if repr_.links is not None:
            retval["links"] = self._render_links(repr_.links)
        if repr_.meta:
            retval["meta"] = dict(repr_.meta)
        return retval

    def _render_error(self, repr_: ErrorRepr) -> MutableJSONObject:
        retval: MutableJSONObject = {}
        for k in ERROR_MEMBERS:
            v = getattr(repr_, k)
            if v is not None:
                retval[k] = v
        if repr_.source is not None:
            source: MutableJSONObject = {}
            if repr_.source.pointer is not None:
                source["pointer"] = repr_.source.pointer
            if repr_.source.parameter is not None:
                source["parameter"] = repr_.source.parameter
            retval["source"] = source
        if repr_.links is not None:
            retval["links"] = self._render_links(repr_.links)
        if repr_.meta:
            retval["meta"] = dict(repr_.meta)
        return retval

    def _render_document(self, path: JSONPointer, repr_: DocumentRepr) -> MutableJSONObject:
        retval: MutableJSONObject = {}
        if isinstance(repr_.data, ResourceRepr):
            retval["data"] = self._render_resource(path / "data", repr_.data)
        elif isinstance(repr_.data, (list, tuple)):
            retval["data"] = [
                self._render_resource(path / "data" / i, r) for i, r in enumerate(repr_.data)
            ]
        elif repr_.data is None:
            retval["data"] = None
        if repr_.included:
            retval["included"] = [
                self._render_resource(path / "included" / i, r)
                for i, r in enumerate(repr_.included)
            ]
        if repr_.errors:
            retval["errors"] = [self._render_error(e) for e in repr_.errors]
        if repr_.links is not None:
            retval["links"] = self._render_links(repr_.links)
        if repr_.meta:
            retval["meta"] = dict(repr_.meta)
        if repr_.jsonapi:
            retval["jsonapi"] = dict(repr_.jsonapi)
        return retval

    def __call__(
        self, repr_: typing.Union[DocumentRepr, LinkageDocumentRepr]
    ) -> MutableJSONObject:
        if isinstance(repr_, LinkageDocumentRepr):
            retval: MutableJSONObject = {"data": self._render_linkage_data(repr_.data)}
            if repr_.meta:
                retval["meta"] = dict(repr_.meta)
            return retval
        return self._render_document(JSONPointer(), repr_)

    def __init__(
        self,
        render_decimal_as_str: bool = True,
        assume_naive_timezone_as: typing.Optional[datetime.tzinfo] = None,
    ):
        self._render_decimal_as_str = render_decimal_as_str
        self._assume_naive_timezone_as = assume_naive_timezone_as
