import dataclasses
import typing

from .types import JSONValue
from .utils import JSONPointer, english_enumerate


@dataclasses.dataclass(frozen=True)
class DeserializationErrorItem:
    """
    A single problem found in a document, along with where it was found.
    """

    pointer: JSONPointer
    message: str

    def __str__(self):
        return f"{self.pointer}: {self.message}"


class DeserializationError(ValueError):
    """
    Raised by :py:class:`jsonapi_sync.serde.deserializer.ReprDeserializer` with every problem found in a document.
    """

    document: JSONValue
    errors: typing.Sequence[DeserializationErrorItem]

    @property
    def message(self) -> str:
        return english_enumerate(str(e) for e in self.errors)

    def __str__(self):
        return self.message

    def __init__(self, document: JSONValue, errors: typing.Sequence[DeserializationErrorItem]):
        super().__init__(document, errors)
        self.document = document
        self.errors = tuple(errors)
