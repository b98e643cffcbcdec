import dataclasses
import json
import logging
import typing

from .exceptions import ApiError, ValidationError
from .models import (
    AttributeKind,
    ResourceAttributeDescriptor,
    ResourceMemberDescriptor,
)
from .registry import ResourceFactoryRegistry, TransformerRegistry
from .resource import PaginationData, Resource
from .serde.deserializer import ReprDeserializer
from .serde.exceptions import DeserializationError, DeserializationErrorItem
from .serde.models import (
    DocumentRepr,
    LinkageDocumentRepr,
    LinkageRepr,
    ResourceIdRepr,
    ResourceRepr,
)
from .serde.renderer import ReprRenderer
from .serde.types import JSONValue, MutableJSONObject, RawBody
from .serde.utils import JSONPointer

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SerializationOptions:
    """
    Tells :py:meth:`Serializer.serialize_resource` what to put in the payload.
    The defaults are those of an update, whose relationships are synchronized separately.
    """

    include_id: bool = True
    dirty_attributes_only: bool = True
    include_to_one: bool = False
    include_to_many: bool = False


#: The options for a resource that is about to be created.
CREATE_OPTIONS = SerializationOptions(
    include_id=False,
    dirty_attributes_only=False,
    include_to_one=True,
    include_to_many=True,
)


@dataclasses.dataclass
class DeserializationResult:
    resources: typing.Sequence[Resource]
    pagination: typing.Optional[PaginationData] = None


class IdentityMap:
    """
    Makes sure a single deserialization pass yields one resource object per ``(type, id)``.

    An instance lives only as long as the pass.  Mapping targets handed in by the caller
    are used in favor of fresh instances.
    """

    _resources: typing.Dict[typing.Tuple[str, str], Resource]
    _mapping_targets: typing.Sequence[Resource]
    _type_registry: ResourceFactoryRegistry

    def get(self, type_name: str, id: str) -> typing.Optional[Resource]:
        return self._resources.get((type_name, id))

    def _find_mapping_target(
        self, type_name: str, id: str, index: typing.Optional[int]
    ) -> typing.Optional[Resource]:
        # primary data maps onto the targets positionally, which is how a resource
        # being created gets its identifier
        if index is not None and index < len(self._mapping_targets):
            target = self._mapping_targets[index]
            if target.type == type_name and target.id in (None, id):
                return target
        for target in self._mapping_targets:
            if target.type == type_name and target.id == id:
                return target
        return None

    def dispense(
        self,
        type_name: str,
        id: str,
        index: typing.Optional[int] = None,
        candidates: typing.Iterable[Resource] = (),
    ) -> Resource:
        """
        Returns the resource object for ``(type, id)``, creating it if needed.

        :param int index: the position of the record in the primary data, if it is part of it.
        :param Iterable[Resource] candidates: resource objects to reuse if nothing in the pass denotes the resource yet.
        :raises UnknownTypeError: if a new object is needed and the type is unknown.
        """
        resource = self._resources.get((type_name, id))
        if resource is not None:
            return resource
        resource = self._find_mapping_target(type_name, id, index)
        if resource is None:
            for candidate in candidates:
                if candidate.type == type_name and candidate.id == id:
                    resource = candidate
                    break
        if resource is None:
            resource = self._type_registry.dispense(type_name)
        resource.id = id
        self._resources[(type_name, id)] = resource
        return resource

    def __init__(
        self,
        type_registry: ResourceFactoryRegistry,
        mapping_targets: typing.Sequence[Resource] = (),
    ):
        self._resources = {}
        self._mapping_targets = mapping_targets
        self._type_registry = type_registry


class Serializer:
    """
    Converts between JSON:API documents and :py:class:`Resource` object graphs.
    """

    _type_registry: ResourceFactoryRegistry
    _transformers: TransformerRegistry
    _deserializer: ReprDeserializer
    _renderer: ReprRenderer

    def _decode(self, body: RawBody) -> JSONValue:
        try:
            if isinstance(body, bytes):
                body = body.decode("utf-8")
            return json.loads(body)
        except (UnicodeDecodeError, ValueError) as e:
            raise ValidationError(
                [DeserializationErrorItem(JSONPointer(), f"body is not a JSON document ({e})")]
            ) from e

    def _parse(self, body: RawBody) -> DocumentRepr:
        document = self._decode(body)
        try:
            return self._deserializer(document)
        except DeserializationError as e:
            raise ValidationError(e.errors) from e

    def _resolve_linkage(
        self,
        identity_map: IdentityMap,
        data: ResourceIdRepr,
        current: typing.Iterable[Resource],
    ) -> Resource:
        return identity_map.dispense(data.type, data.id, candidates=current)

    def _populate_relationship(
        self,
        identity_map: IdentityMap,
        errors: typing.List[DeserializationErrorItem],
        resource: Resource,
        member: ResourceMemberDescriptor,
        linkage: LinkageRepr,
    ) -> None:
        pointer = linkage._source_ if isinstance(linkage._source_, JSONPointer) else JSONPointer()
        if member.kind is AttributeKind.TO_ONE:
            if isinstance(linkage.data, (list, tuple)):
                errors.append(
                    DeserializationErrorItem(
                        pointer / "data",
                        f"to-one relationship ({member.serialized_name}) must not be an array",
                    )
                )
                return
            if linkage.data is None:
                resource.populate(member.name, None)
            else:
                current = resource[member.name]
                resource.populate(
                    member.name,
                    self._resolve_linkage(
                        identity_map,
                        typing.cast(ResourceIdRepr, linkage.data),
                        [current] if current is not None else [],
                    ),
                )
        else:
            collection = resource[member.name]
            if linkage.links is not None:
                collection.links = linkage.links
            if not isinstance(linkage.data, (list, tuple)):
                errors.append(
                    DeserializationErrorItem(
                        pointer / "data",
                        f"to-many relationship ({member.serialized_name}) must be an array",
                    )
                )
                return
            current = list(collection.resources) + list(collection.removed_resources)
            resource.populate(
                member.name,
                [self._resolve_linkage(identity_map, data, current) for data in linkage.data],
            )

    def _populate(
        self,
        identity_map: IdentityMap,
        errors: typing.List[DeserializationErrorItem],
        repr_: ResourceRepr,
        resource: Resource,
    ) -> None:
        pointer = repr_._source_ if isinstance(repr_._source_, JSONPointer) else JSONPointer()
        schema = resource.resource_type

        for serialized_name, value in repr_.attributes.items():
            member = schema.member_by_serialized_name(serialized_name)
            if member is None or member.is_relationship:
                logger.debug(
                    "ignoring undeclared attribute %s of %s %s",
                    serialized_name,
                    repr_.type,
                    repr_.id,
                )
                continue
            try:
                value = self._transformers.deserialize(
                    value, typing.cast(ResourceAttributeDescriptor, member)
                )
            except ValueError as e:
                errors.append(
                    DeserializationErrorItem(pointer / "attributes" / serialized_name, str(e))
                )
                continue
            resource.populate(member.name, value)

        for serialized_name, linkage in repr_.relationships.items():
            member = schema.member_by_serialized_name(serialized_name)
            if member is None or not member.is_relationship:
                logger.debug(
                    "ignoring undeclared relationship %s of %s %s",
                    serialized_name,
                    repr_.type,
                    repr_.id,
                )
                continue
            if not linkage.has_data:
                if member.kind is AttributeKind.TO_MANY and linkage.links is not None:
                    resource[member.name].links = linkage.links
                continue
            self._populate_relationship(identity_map, errors, resource, member, linkage)

        if repr_.links is not None:
            resource.links = repr_.links
        resource.meta = dict(repr_.meta)
        resource.is_loaded = True

    def _pagination(self, document: DocumentRepr) -> typing.Optional[PaginationData]:
        if not document.is_collection or (document.links is None and not document.meta):
            return None
        links = document.links
        return PaginationData(
            self_=links.self_ if links is not None else None,
            next=links.next if links is not None else None,
            prev=links.prev if links is not None else None,
            first=links.first if links is not None else None,
            last=links.last if links is not None else None,
            meta=dict(document.meta),
        )

    def deserialize_response(
        self, body: RawBody, mapping_targets: typing.Sequence[Resource] = ()
    ) -> DeserializationResult:
        """
        Deserializes a response document into resource objects.

        Records in the primary data and in ``included`` are resolved against each other,
        so that every reference to the same ``(type, id)`` yields the same object.  References
        to resources outside the document become placeholders which are not loaded.

        :param RawBody body: the response body.
        :param Sequence[Resource] mapping_targets: resource objects to populate in place.
        :return: the resources in the primary data and the pagination information.
        :raises ValidationError: if the document is invalid.
        :raises UnknownTypeError: if the document contains a resource of an unknown type.
        """
        document = self._parse(body)
        identity_map = IdentityMap(self._type_registry, mapping_targets)
        primary = document.primary_resources

        bound: typing.List[typing.Tuple[ResourceRepr, Resource]] = []
        for i, repr_ in enumerate(primary):
            bound.append(
                (repr_, identity_map.dispense(repr_.type, typing.cast(str, repr_.id), index=i))
            )
        for repr_ in document.included:
            bound.append((repr_, identity_map.dispense(repr_.type, typing.cast(str, repr_.id))))

        errors: typing.List[DeserializationErrorItem] = []
        for repr_, resource in bound:
            self._populate(identity_map, errors, repr_, resource)
        if errors:
            raise ValidationError(errors)

        return DeserializationResult(
            resources=tuple(resource for _, resource in bound[: len(primary)]),
            pagination=self._pagination(document),
        )

    def serialize_resource(
        self, resource: Resource, options: SerializationOptions = SerializationOptions()
    ) -> MutableJSONObject:
        """
        Renders a resource as a request document.  Relationships are rendered as linkage,
        so every related resource must already have an identifier.
        """
        attributes: typing.Dict[str, typing.Any] = {}
        relationships: typing.Dict[str, LinkageRepr] = {}

        for member in resource.resource_type.members:
            value = resource[member.name]
            if member.kind is AttributeKind.PLAIN:
                attribute = typing.cast(ResourceAttributeDescriptor, member)
                if attribute.read_only:
                    continue
                if options.dirty_attributes_only and not resource.is_dirty(member.name):
                    continue
                attributes[member.serialized_name] = self._transformers.serialize(value, attribute)
            elif member.kind is AttributeKind.TO_ONE:
                if not options.include_to_one:
                    continue
                if value is None:
                    relationships[member.serialized_name] = LinkageRepr(data=None)
                else:
                    relationships[member.serialized_name] = LinkageRepr(
                        data=self._resource_id(value)
                    )
            elif options.include_to_many:
                relationships[member.serialized_name] = LinkageRepr(
                    data=tuple(self._resource_id(r) for r in value)
                )

        return self._renderer(
            DocumentRepr(
                data=ResourceRepr(
                    type=resource.type,
                    id=resource.id if options.include_id else None,
                    attributes=attributes,
                    relationships=relationships,
                )
            )
        )

    def serialize_linkage(
        self, resources: typing.Union[Resource, typing.Sequence[Resource]]
    ) -> MutableJSONObject:
        """
        Renders the body of a request against a relationship endpoint.  A single resource
        yields to-one linkage, a sequence yields to-many linkage.
        """
        if isinstance(resources, Resource):
            data: typing.Any = self._resource_id(resources)
        else:
            data = tuple(self._resource_id(r) for r in resources)
        return self._renderer(LinkageDocumentRepr(data=data))

    def _resource_id(self, resource: Resource) -> ResourceIdRepr:
        if resource.id is None:
            raise AssertionError(
                f"attempt to relate {resource.type} resource without id; only existing resources can be related"
            )
        return ResourceIdRepr(type=resource.type, id=resource.id)

    def deserialize_error_payload(self, body: typing.Optional[RawBody], status: int) -> ApiError:
        """
        Builds an :py:class:`ApiError` out of an error response.  A body that is not an
        error document still yields an error carrying the status.
        """
        if not body:
            return ApiError(status)
        try:
            document = self._parse(body)
        except ValidationError as e:
            logger.debug("error response with status %d is not an error document: %s", status, e)
            return ApiError(status)
        return ApiError(status, document.errors)

    def __init__(
        self,
        type_registry: ResourceFactoryRegistry,
        transformer_registry: TransformerRegistry,
        renderer: typing.Optional[ReprRenderer] = None,
        deserializer: typing.Optional[ReprDeserializer] = None,
    ):
        self._type_registry = type_registry
        self._transformers = transformer_registry
        self._renderer = renderer if renderer is not None else ReprRenderer()
        self._deserializer = deserializer if deserializer is not None else ReprDeserializer()
