"""
A client for JSON:API servers that keeps an object graph of resources in sync with the server.
"""
from .client import Client  # noqa
from .exceptions import (  # noqa
    ApiError,
    JSONAPISyncError,
    NotFoundError,
    TransportError,
    TypeMismatchError,
    UnknownTypeError,
    ValidationError,
)
from .models import (  # noqa
    ResourceAttributeDescriptor,
    ResourceToManyRelationshipDescriptor,
    ResourceToOneRelationshipDescriptor,
    ResourceType,
)
from .query import Query  # noqa
from .resource import (  # noqa
    LinkedResourceCollection,
    PaginationData,
    Resource,
    ResourceCollection,
)
from .router import JSONAPIRouter, Router  # noqa
from .transformers import Transformer  # noqa
from .transport import (  # noqa
    CallbackTransportAdapter,
    HTTPXTransport,
    Method,
    Transport,
    TransportResponse,
)
