import abc
import typing

from .serde.exceptions import DeserializationErrorItem
from .serde.models import ErrorRepr
from .serde.utils import english_enumerate


class JSONAPISyncError(Exception, metaclass=abc.ABCMeta):
    @property
    @abc.abstractmethod
    def message(self) -> str:
        ...  # pragma: nocover

    def __str__(self):
        return self.message


class TransportError(JSONAPISyncError):
    """
    Raised when a request could not be carried out: connection failures, timeouts, cancellation.
    The underlying exception, if any, is chained as ``__cause__``.
    """

    _message: str

    @property
    def message(self) -> str:
        return self._message

    def __init__(self, message: str):
        super().__init__(message)
        self._message = message


class ApiError(JSONAPISyncError):
    """
    Raised when the server answered with an error document.
    """

    status: int
    errors: typing.Sequence[ErrorRepr]

    @property
    def code(self) -> typing.Optional[str]:
        return self.errors[0].code if self.errors else None

    @property
    def title(self) -> typing.Optional[str]:
        return self.errors[0].title if self.errors else None

    @property
    def detail(self) -> typing.Optional[str]:
        return self.errors[0].detail if self.errors else None

    @property
    def message(self) -> str:
        descriptions = [
            e.title or e.detail or e.code for e in self.errors if e.title or e.detail or e.code
        ]
        if descriptions:
            return f"server responded with status {self.status}: {english_enumerate(descriptions)}"
        return f"server responded with status {self.status}"

    def __init__(self, status: int, errors: typing.Sequence[ErrorRepr] = ()):
        super().__init__(status, errors)
        self.status = status
        self.errors = tuple(errors)


class ValidationError(JSONAPISyncError):
    """
    Raised when a document received from the server is structurally invalid.
    """

    errors: typing.Sequence[DeserializationErrorItem]

    @property
    def message(self) -> str:
        if not self.errors:
            return "invalid document"
        return f"invalid document: {english_enumerate(str(e) for e in self.errors)}"

    def __init__(self, errors: typing.Sequence[DeserializationErrorItem]):
        super().__init__(errors)
        self.errors = tuple(errors)


class UnknownTypeError(JSONAPISyncError):
    name: str

    @property
    def message(self) -> str:
        return f'no resource known as "{self.name}"'

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


class NotFoundError(JSONAPISyncError):
    resource_type: str
    resource_ids: typing.Sequence[str]

    @property
    def message(self) -> str:
        if self.resource_ids:
            return f"no {self.resource_type} resource found for {english_enumerate(self.resource_ids, conj='or')}"
        return f"no {self.resource_type} resource found"

    def __init__(self, resource_type: str, resource_ids: typing.Sequence[str] = ()):
        super().__init__(resource_type, resource_ids)
        self.resource_type = resource_type
        self.resource_ids = tuple(resource_ids)


class TypeMismatchError(JSONAPISyncError):
    expected: str
    actual: str

    @property
    def message(self) -> str:
        return f"expected a {self.expected} resource, got {self.actual}"

    def __init__(self, expected: str, actual: str):
        super().__init__(expected, actual)
        self.expected = expected
        self.actual = actual
