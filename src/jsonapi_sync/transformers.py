import abc
import base64
import binascii
import datetime
import decimal
import typing

from .models import ResourceAttributeDescriptor
from .serde.types import JSONValue


class Transformer(metaclass=abc.ABCMeta):
    """
    A :py:class:`Transformer` converts the values of attributes declared with a
    particular native type from and to their wire representation.
    """

    native_type: typing.ClassVar[typing.Type]

    @abc.abstractmethod
    def deserialize(self, value: JSONValue, attribute: ResourceAttributeDescriptor) -> typing.Any:
        """
        Converts a value that came from the wire.

        :raises ValueError: if the value cannot be converted.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def serialize(self, value: typing.Any, attribute: ResourceAttributeDescriptor) -> JSONValue:
        """
        Converts a native value for the wire.
        """
        ...  # pragma: nocover


def _expect_str(value: JSONValue, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what} must be given as a string, got {value!r}")
    return value


class DateTimeTransformer(Transformer):
    """
    ISO 8601 date-times.  Date-times are sent in UTC; a naive date-time is rejected
    unless a timezone to assume for it is given.
    """

    native_type = datetime.datetime
    _assume_naive_timezone_as: typing.Optional[datetime.tzinfo]

    def deserialize(self, value, attribute):
        s = _expect_str(value, "date-time")
        # datetime.fromisoformat() accepts the "Z" designator only from Python 3.11 on
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        return datetime.datetime.fromisoformat(s)

    def serialize(self, value, attribute):
        if value.tzinfo is None:
            if self._assume_naive_timezone_as is None:
                raise ValueError(f"naive datetime {value} in attribute ({attribute.name})")
            value = value.replace(tzinfo=self._assume_naive_timezone_as)
        return value.astimezone(datetime.timezone.utc).isoformat()

    def __init__(self, assume_naive_timezone_as: typing.Optional[datetime.tzinfo] = None):
        self._assume_naive_timezone_as = assume_naive_timezone_as


class DateTransformer(Transformer):
    native_type = datetime.date

    def deserialize(self, value, attribute):
        return datetime.date.fromisoformat(_expect_str(value, "date"))

    def serialize(self, value, attribute):
        return value.isoformat()


class DecimalTransformer(Transformer):
    """
    Decimals are accepted as either strings or numbers, and sent as strings
    so that no precision is lost.
    """

    native_type = decimal.Decimal

    def deserialize(self, value, attribute):
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(f"decimal must be given as a string or a number, got {value!r}")
        try:
            return decimal.Decimal(str(value))
        except decimal.InvalidOperation:
            raise ValueError(f"invalid decimal {value!r}") from None

    def serialize(self, value, attribute):
        return str(value)


class Base64BytesTransformer(Transformer):
    native_type = bytes

    def deserialize(self, value, attribute):
        try:
            return base64.b64decode(_expect_str(value, "binary data"), validate=True)
        except binascii.Error as e:
            raise ValueError(f"invalid base64 data ({e})") from None

    def serialize(self, value, attribute):
        return base64.b64encode(value).decode("ascii")


def default_transformers() -> typing.Sequence[Transformer]:
    return (
        DateTimeTransformer(),
        DateTransformer(),
        DecimalTransformer(),
        Base64BytesTransformer(),
    )
