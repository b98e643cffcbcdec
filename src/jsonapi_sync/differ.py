import dataclasses
import enum
import typing

from .models import AttributeKind, ResourceRelationshipDescriptor
from .resource import LinkedResourceCollection, Resource


class OperationKind(enum.Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


@dataclasses.dataclass(frozen=True)
class RelationshipOperation:
    kind: OperationKind
    relationship: ResourceRelationshipDescriptor
    resources: typing.Tuple[Resource, ...]


def _check_persisted(resources: typing.Iterable[Resource], verb: str) -> None:
    for resource in resources:
        if resource.id is None:
            raise AssertionError(
                f"attempt to {verb} {resource.type} resource without id; only existing resources can be related"
            )


def compute_relationship_operations(resource: Resource) -> typing.List[RelationshipOperation]:
    """
    Computes the operations that bring the relationships of an existing resource in sync with the server.

    Operations come in the declaration order of the relationships.  A to-one relationship yields
    a ``replace`` whenever it links a persisted resource; a to-many relationship yields an ``add``
    for the resources added since the last synchronization followed by a ``remove`` for those
    removed, each left out when there is nothing to do.

    :raises AssertionError: if a resource to add or remove has no identifier.
    """
    operations: typing.List[RelationshipOperation] = []
    for relationship in resource.resource_type.relationships:
        value = resource[relationship.name]
        if relationship.kind is AttributeKind.TO_ONE:
            if value is not None and value.id is not None:
                operations.append(
                    RelationshipOperation(OperationKind.REPLACE, relationship, (value,))
                )
        else:
            collection = typing.cast(LinkedResourceCollection, value)
            added = collection.added_resources
            removed = collection.removed_resources
            _check_persisted(added, "relate")
            _check_persisted(removed, "unrelate")
            if added:
                operations.append(
                    RelationshipOperation(OperationKind.ADD, relationship, tuple(added))
                )
            if removed:
                operations.append(
                    RelationshipOperation(OperationKind.REMOVE, relationship, tuple(removed))
                )
    return operations
