"""
The registries the serializer consults: resource factories by type name, and transformers
by native attribute type.

Both are plain configuration objects owned by a :py:class:`jsonapi_sync.client.Client`.
They are not synchronized; register everything before issuing requests.
"""
import typing

from .exceptions import UnknownTypeError
from .models import ResourceAttributeDescriptor
from .resource import Resource
from .serde.types import JSONValue
from .transformers import Transformer, default_transformers

ResourceFactory = typing.Callable[[], Resource]


class ResourceFactoryRegistry:
    _factories: typing.Dict[str, ResourceFactory]

    def register(self, type_name: str, factory: ResourceFactory) -> None:
        self._factories[type_name] = factory

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._factories

    def dispense(self, type_name: str) -> Resource:
        """
        Instantiates an empty resource of the given type.

        :raises UnknownTypeError: if no factory is registered for the type.
        """
        try:
            factory = self._factories[type_name]
        except KeyError:
            raise UnknownTypeError(type_name)
        resource = factory()
        if resource.type != type_name:
            raise TypeError(
                f'factory registered for "{type_name}" produced a "{resource.type}" resource'
            )
        return resource

    def __init__(self):
        self._factories = {}


class TransformerRegistry:
    _transformers: typing.Dict[type, Transformer]

    @classmethod
    def with_defaults(cls) -> "TransformerRegistry":
        registry = cls()
        for transformer in default_transformers():
            registry.register(transformer)
        return registry

    def register(self, transformer: Transformer) -> None:
        self._transformers[transformer.native_type] = transformer

    def lookup(self, typ: typing.Optional[type]) -> typing.Optional[Transformer]:
        if typ is None:
            return None
        # fast pass
        transformer = self._transformers.get(typ)
        if transformer is not None:
            return transformer
        for base in getattr(typ, "__mro__", ())[1:]:
            transformer = self._transformers.get(base)
            if transformer is not None:
                return transformer
        return None

    def deserialize(self, value: JSONValue, attribute: ResourceAttributeDescriptor) -> typing.Any:
        transformer = self.lookup(attribute.type)
        if transformer is None or value is None:
            return value
        return transformer.deserialize(value, attribute)

    def serialize(self, value: typing.Any, attribute: ResourceAttributeDescriptor) -> typing.Any:
        transformer = self.lookup(attribute.type)
        if transformer is None or value is None:
            return value
        return transformer.serialize(value, attribute)

    def __init__(self):
        self._transformers = {}
