import collections.abc
import json
import typing

from .exceptions import DeserializationError, DeserializationErrorItem
from .models import (
    ERROR_MEMBERS,
    LINK_NAMES,
    DocumentRepr,
    ErrorRepr,
    LinkageRepr,
    LinksRepr,
    Missing,
    MissingType,
    ResourceIdRepr,
    ResourceRepr,
    SourceRepr,
)
from .types import JSONObject, JSONValue
from .utils import JSONPointer

EMPTY_ATTRIBUTES_DICT: typing.Mapping[str, JSONValue] = {}


def _type_name(value: JSONValue) -> str:
    if value is None:
        return "null"
    elif isinstance(value, bool):
        return "boolean"
    elif isinstance(value, (int, float)):
        return "number"
    elif isinstance(value, str):
        return "string"
    elif isinstance(value, collections.abc.Mapping):
        return "object"
    else:
        return "array"


class ReprDeserializerContext:
    errors: typing.List[DeserializationErrorItem]

    def validation_error_occurred(self, pointer: JSONPointer, message: str) -> None:
        self.errors.append(DeserializationErrorItem(pointer, message))

    def __init__(self):
        self.errors = []


class ReprDeserializer:
    """
    :py:class:`ReprDeserializer` turns a decoded JSON:API document into a :py:class:`DocumentRepr`.

    Every structural problem found in the document is collected along with the JSON pointer
    to the offending node, and reported at once as a :py:class:`DeserializationError`.
    """

    def _expect_object(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[JSONObject]:
        if not isinstance(value, collections.abc.Mapping):
            ctx.validation_error_occurred(
                pointer,
                f"value has type {_type_name(value)} ({json.dumps(value)}) where object expected",
            )
            return None
        return value

    def _expect_string(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[str]:
        if not isinstance(value, str):
            ctx.validation_error_occurred(
                pointer,
                f"value has type {_type_name(value)} ({json.dumps(value)}) where string expected",
            )
            return None
        return value

    def _optional_string(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[str]:
        if value is None:
            return None
        # some servers render the status of an error object as a number
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return self._expect_string(ctx, pointer, value)

    def _convert_meta(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONObject
    ) -> typing.Dict[str, typing.Any]:
        if "meta" not in value:
            return {}
        meta = self._expect_object(ctx, pointer / "meta", value["meta"])
        return dict(meta) if meta is not None else {}

    def _convert_links(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[LinksRepr]:
        links_ = self._expect_object(ctx, pointer, value)
        if links_ is None:
            return None
        links = LinksRepr(_source_=pointer)
        for k, v in links_.items():
            attr = LINK_NAMES.get(k)
            if attr is None or v is None:
                continue
            # a link may be either a URL string or a link object
            if isinstance(v, collections.abc.Mapping):
                v = v.get("href")
            href = self._expect_string(ctx, pointer / k, v)
            if href is not None:
                setattr(links, attr, href)
        return links

    def _convert_resource_id(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[ResourceIdRepr]:
        value_ = self._expect_object(ctx, pointer, value)
        if value_ is None:
            return None
        for k in ("type", "id"):
            if k not in value_:
                ctx.validation_error_occurred(pointer / k, f'value must have a property "{k}"')
                return None
        type_ = self._expect_string(ctx, pointer / "type", value_["type"])
        id_ = self._expect_string(ctx, pointer / "id", value_["id"])
        if type_ is None or id_ is None:
            return None
        return ResourceIdRepr(
            type=type_,
            id=id_,
            meta=self._convert_meta(ctx, pointer, value_),
            _source_=pointer,
        )

    def _convert_linkage(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[LinkageRepr]:
        value_ = self._expect_object(ctx, pointer, value)
        if value_ is None:
            return None
        data: typing.Union[
            None, ResourceIdRepr, typing.Sequence[ResourceIdRepr], MissingType
        ] = Missing
        if "data" in value_:
            data_ = value_["data"]
            if data_ is None:
                data = None
            elif isinstance(data_, list):
                items = [
                    self._convert_resource_id(ctx, pointer / "data" / i, v)
                    for i, v in enumerate(data_)
                ]
                data = [item for item in items if item is not None]
            else:
                data = self._convert_resource_id(ctx, pointer / "data", data_)
        links = None
        if "links" in value_:
            links = self._convert_links(ctx, pointer / "links", value_["links"])
        return LinkageRepr(
            data=data,
            links=links,
            meta=self._convert_meta(ctx, pointer, value_),
            _source_=pointer,
        )

    def _convert_resource(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[ResourceRepr]:
        value_ = self._expect_object(ctx, pointer, value)
        if value_ is None:
            return None

        if "type" not in value_:
            ctx.validation_error_occurred(pointer / "type", 'value must have a property "type"')
            return None
        type_ = self._expect_string(ctx, pointer / "type", value_["type"])

        if value_.get("id") is None:
            ctx.validation_error_occurred(pointer / "id", 'value must have a property "id"')
            return None
        id_ = self._expect_string(ctx, pointer / "id", value_["id"])

        attributes = self._expect_object(
            ctx, pointer / "attributes", value_.get("attributes", EMPTY_ATTRIBUTES_DICT)
        )

        relationships: typing.List[typing.Tuple[str, LinkageRepr]] = []
        if "relationships" in value_:
            relationships_ = self._expect_object(
                ctx, pointer / "relationships", value_["relationships"]
            )
            if relationships_ is not None:
                for k, v in relationships_.items():
                    linkage = self._convert_linkage(ctx, pointer / "relationships" / k, v)
                    if linkage is not None:
                        relationships.append((k, linkage))

        links = None
        if "links" in value_:
            links = self._convert_links(ctx, pointer / "links", value_["links"])

        if type_ is None or attributes is None:
            return None

        return ResourceRepr(
            type=type_,
            id=id_,
            attributes=dict(attributes),
            relationships=dict(relationships),
            links=links,
            meta=self._convert_meta(ctx, pointer, value_),
            _source_=pointer,
        )

    def _convert_error(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[ErrorRepr]:
        value_ = self._expect_object(ctx, pointer, value)
        if value_ is None:
            return None
        error = ErrorRepr(_source_=pointer)
        for k in ERROR_MEMBERS:
            setattr(error, k, self._optional_string(ctx, pointer / k, value_.get(k)))
        if "source" in value_:
            source_ = self._expect_object(ctx, pointer / "source", value_["source"])
            if source_ is not None:
                error.source = SourceRepr(
                    pointer=self._optional_string(
                        ctx, pointer / "source" / "pointer", source_.get("pointer")
                    ),
                    parameter=self._optional_string(
                        ctx, pointer / "source" / "parameter", source_.get("parameter")
                    ),
                    _source_=pointer / "source",
                )
        if "links" in value_:
            error.links = self._convert_links(ctx, pointer / "links", value_["links"])
        error.meta = self._convert_meta(ctx, pointer, value_)
        return error

    def _convert_document(
        self, ctx: ReprDeserializerContext, pointer: JSONPointer, value: JSONValue
    ) -> typing.Optional[DocumentRepr]:
        value_ = self._expect_object(ctx, pointer, value)
        if value_ is None:
            return None

        if not any(k in value_ for k in ("data", "errors", "meta")):
            ctx.validation_error_occurred(
                pointer, 'a document must contain at least one of "data", "errors", or "meta"'
            )
            return None

        data: typing.Union[
            None, ResourceRepr, typing.Sequence[ResourceRepr], MissingType
        ] = Missing
        if "data" in value_:
            data_ = value_["data"]
            if data_ is None:
                data = None
            elif isinstance(data_, list):
                items = [
                    self._convert_resource(ctx, pointer / "data" / i, v)
                    for i, v in enumerate(data_)
                ]
                data = [item for item in items if item is not None]
            else:
                data = self._convert_resource(ctx, pointer / "data", data_)

        included: typing.List[ResourceRepr] = []
        if "included" in value_:
            included_ = value_["included"]
            if not isinstance(included_, list):
                ctx.validation_error_occurred(
                    pointer / "included",
                    f"value has type {_type_name(included_)} where array expected",
                )
            else:
                for i, v in enumerate(included_):
                    resource = self._convert_resource(ctx, pointer / "included" / i, v)
                    if resource is not None:
                        included.append(resource)

        errors: typing.List[ErrorRepr] = []
        if "errors" in value_:
            errors_ = value_["errors"]
            if not isinstance(errors_, list):
                ctx.validation_error_occurred(
                    pointer / "errors",
                    f"value has type {_type_name(errors_)} where array expected",
                )
            else:
                for i, v in enumerate(errors_):
                    error = self._convert_error(ctx, pointer / "errors" / i, v)
                    if error is not None:
                        errors.append(error)

        links = None
        if "links" in value_:
            links = self._convert_links(ctx, pointer / "links", value_["links"])

        jsonapi: typing.Dict[str, typing.Any] = {}
        if "jsonapi" in value_:
            jsonapi_ = self._expect_object(ctx, pointer / "jsonapi", value_["jsonapi"])
            if jsonapi_ is not None:
                jsonapi = dict(jsonapi_)

        return DocumentRepr(
            data=data,
            included=tuple(included),
            errors=tuple(errors),
            jsonapi=jsonapi,
            links=links,
            meta=self._convert_meta(ctx, pointer, value_),
            _source_=pointer,
        )

    def __call__(self, document: JSONValue) -> DocumentRepr:
        """
        Deserializes a decoded JSON:API document.

        :param JSONValue document: the decoded document.
        :return: the :py:class:`DocumentRepr`.
        :raises DeserializationError: if the document is structurally invalid.
        """
        ctx = ReprDeserializerContext()
        retval = self._convert_document(ctx, JSONPointer(), document)
        if ctx.errors or retval is None:
            raise DeserializationError(document, ctx.errors)
        return retval
