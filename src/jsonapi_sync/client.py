import logging
import typing

from .differ import OperationKind, RelationshipOperation, compute_relationship_operations
from .exceptions import NotFoundError, TypeMismatchError
from .models import AttributeKind
from .query import Query, ResourceClassOrTypeName
from .registry import ResourceFactory, ResourceFactoryRegistry, TransformerRegistry
from .resource import LinkedResourceCollection, Resource, ResourceCollection
from .router import JSONAPIRouter, Router
from .serializer import CREATE_OPTIONS, Serializer
from .serde.types import JSONObject
from .transformers import Transformer
from .transport import (
    ApiResponseStatusError,
    HTTPXTransport,
    Method,
    Transport,
    TransportResponse,
)

logger = logging.getLogger(__name__)

R = typing.TypeVar("R", bound=Resource)


class Client:
    """
    The entry point: fetches, saves and deletes resources.

    .. code-block:: python

       client = Client("https://example.com/api")
       client.register_resource("articles", Article)
       client.register_resource("people", Person)

       article = await client.find_one(Article, "1")
       article["title"] = "Updated"
       article["tags"].add(await client.find_one(Tag, "7"))
       await client.save(article)

    Every operation either returns its result or raises a single
    :py:class:`~jsonapi_sync.exceptions.JSONAPISyncError`.  Saving an existing resource
    updates its attributes first and then its relationships one operation at a time;
    the first failing operation aborts the rest and is raised, leaving the resource
    with whatever had been applied so far.
    """

    _router: Router
    _transport: Transport
    _serializer: Serializer
    _type_registry: ResourceFactoryRegistry
    _transformer_registry: TransformerRegistry

    @property
    def base_url(self) -> typing.Optional[str]:
        return self._router.base_url

    @base_url.setter
    def base_url(self, value: typing.Optional[str]) -> None:
        self._router.base_url = value

    @property
    def trace_enabled(self) -> bool:
        return self._transport.trace_enabled

    @trace_enabled.setter
    def trace_enabled(self, value: bool) -> None:
        self._transport.trace_enabled = value

    @property
    def transport(self) -> Transport:
        return self._transport

    def register_resource(self, type_name: str, factory: ResourceFactory) -> None:
        """
        Registers a factory that creates empty resources of the given type.
        Register every type before issuing requests that may involve it.
        """
        self._type_registry.register(type_name, factory)

    def register_transformer(self, transformer: Transformer) -> None:
        self._transformer_registry.register(transformer)

    def _handle_error_response(self, response: TransportResponse) -> Exception:
        error = response.error
        assert error is not None
        if isinstance(error, ApiResponseStatusError):
            status = response.status_code if response.status_code is not None else error.status_code
            return self._serializer.deserialize_error_payload(response.body, status)
        return error

    async def _perform(
        self, method: Method, url: str, payload: typing.Optional[JSONObject] = None
    ) -> TransportResponse:
        logger.debug("%s %s", method.value, url)
        response = await self._transport.request(method, url, payload)
        if response.error is not None:
            raise self._handle_error_response(response)
        return response

    async def _fetch(
        self, query: Query, mapping_targets: typing.Sequence[Resource] = ()
    ) -> ResourceCollection:
        response = await self._perform(Method.GET, self._router.url_for_query(query))
        result = self._serializer.deserialize_response(response.body or b"", mapping_targets)
        return ResourceCollection(result.resources, result.pagination)

    def _check_type(self, query: Query, resource: Resource) -> None:
        if resource.type != query.resource_type or (
            query.resource_class is not None and not isinstance(resource, query.resource_class)
        ):
            raise TypeMismatchError(query.resource_type, resource.type)

    async def find(
        self,
        target: typing.Union[Query, ResourceClassOrTypeName],
        ids: typing.Optional[typing.Iterable[str]] = None,
    ) -> ResourceCollection:
        """
        Fetches resources.

        * ``find(Article)`` fetches every article,
        * ``find(Article, ["1", "2"])`` fetches the given articles,
        * ``find(query)`` executes the query.
        """
        if isinstance(target, Query):
            if ids is not None:
                raise TypeError("identifiers cannot be given along with a query")
            query = target
        else:
            query = Query(target, ids)
        return await self._fetch(query)

    @typing.overload
    async def find_one(self, target: typing.Type[R], id: str) -> R:
        ...  # pragma: nocover

    @typing.overload
    async def find_one(self, target: typing.Union[Query, str], id: typing.Optional[str] = None) -> Resource:
        ...  # pragma: nocover

    async def find_one(self, target, id=None):
        """
        Fetches a single resource, either by type and identifier or by query.

        :raises NotFoundError: if nothing was found.
        :raises TypeMismatchError: if what was found is not of the requested type.
        """
        if isinstance(target, Query):
            if id is not None:
                raise TypeError("an identifier cannot be given along with a query")
            query = target
        else:
            if id is None:
                raise TypeError("an identifier is required")
            query = Query(target, [id])
        collection = await self._fetch(query)
        if not collection:
            raise NotFoundError(query.resource_type, query.resource_ids)
        resource = collection[0]
        self._check_type(query, resource)
        return resource

    async def ensure(
        self,
        resource: R,
        query_modifier: typing.Optional[typing.Callable[[Query], Query]] = None,
    ) -> R:
        """
        Loads a resource that has not been loaded yet, in place.  A loaded resource is
        returned right away without issuing any request.

        :param Resource resource: the resource, typically a placeholder found in a relationship.
        :param query_modifier: a function that refines the query before it is executed, e.g. to include related resources.
        :raises NotFoundError: if the server returned no resource.
        """
        if resource.is_loaded:
            return resource
        query = Query.for_resource(resource)
        if query_modifier is not None:
            query = query_modifier(query)
        collection = await self._fetch(query, mapping_targets=[resource])
        if not collection:
            raise NotFoundError(query.resource_type, query.resource_ids)
        return resource

    async def save(self, resource: R) -> R:
        """
        Creates the resource if it has no identifier, updates it otherwise.

        A creation sends every attribute along with the relationship linkage.  An update sends
        the dirty attributes, and then synchronizes the relationships through their own endpoints.
        """
        is_new = resource.id is None
        if is_new:
            method = Method.POST
            url = self._router.url_for_resource_type(resource.type)
            payload = self._serializer.serialize_resource(resource, CREATE_OPTIONS)
        else:
            method = Method.PUT
            url = self._router.url_for_query(Query.for_resource(resource))
            payload = self._serializer.serialize_resource(resource)

        response = await self._perform(method, url, payload)

        # map the response back onto the resource
        if response.body:
            self._serializer.deserialize_response(response.body, [resource])
        resource.mark_clean()

        if is_new:
            # the linkage went along with the creation
            for relationship in resource.resource_type.relationships:
                if relationship.kind is AttributeKind.TO_MANY:
                    collection = typing.cast(LinkedResourceCollection, resource[relationship.name])
                    collection.mark_added_synced()
                    collection.mark_removed_synced()
        else:
            await self._update_relationships(resource)
        return resource

    # TODO: coalesce the operations into a single request with the JSON:API atomic operations extension
    async def _update_relationships(self, resource: Resource) -> None:
        for operation in compute_relationship_operations(resource):
            try:
                await self._execute_operation(resource, operation)
            except Exception as e:
                logger.warning(
                    "error updating relationship %s of %s %s: %s",
                    operation.relationship.name,
                    resource.type,
                    resource.id,
                    e,
                )
                raise

    async def _execute_operation(self, resource: Resource, operation: RelationshipOperation) -> None:
        relationship = operation.relationship
        if operation.kind is OperationKind.REPLACE:
            await self._perform(
                Method.PUT,
                self._router.url_for_relationship(relationship.serialized_name, resource),
                self._serializer.serialize_linkage(operation.resources[0]),
            )
            return

        collection = typing.cast(LinkedResourceCollection, resource[relationship.name])
        payload = self._serializer.serialize_linkage(operation.resources)
        if operation.kind is OperationKind.ADD:
            await self._perform(
                Method.POST,
                self._router.url_for_relationship(relationship.serialized_name, resource),
                payload,
            )
            collection.mark_added_synced()
        else:
            await self._perform(
                Method.DELETE,
                self._router.url_for_relationship(
                    relationship.serialized_name,
                    resource,
                    [typing.cast(str, r.id) for r in operation.resources],
                ),
                payload,
            )
            collection.mark_removed_synced()

    async def delete(self, resource: Resource) -> None:
        """
        Deletes the resource on the server.  The resource object itself is left untouched.
        """
        await self._perform(Method.DELETE, self._router.url_for_query(Query.for_resource(resource)))

    async def aclose(self) -> None:
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def __init__(
        self,
        base_url: typing.Optional[str] = None,
        *,
        router: typing.Optional[Router] = None,
        transport: typing.Optional[Transport] = None,
        trace_enabled: bool = False,
        type_registry: typing.Optional[ResourceFactoryRegistry] = None,
        transformer_registry: typing.Optional[TransformerRegistry] = None,
    ):
        self._router = router if router is not None else JSONAPIRouter()
        if base_url is not None:
            self._router.base_url = base_url
        self._transport = transport if transport is not None else HTTPXTransport()
        if trace_enabled:
            self._transport.trace_enabled = True
        self._type_registry = type_registry if type_registry is not None else ResourceFactoryRegistry()
        self._transformer_registry = (
            transformer_registry
            if transformer_registry is not None
            else TransformerRegistry.with_defaults()
        )
        self._serializer = Serializer(self._type_registry, self._transformer_registry)
