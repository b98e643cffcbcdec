import typing


def _escape(component: str) -> str:
    return component.replace("~", "~0").replace("/", "~1")


def _unescape(component: str) -> str:
    return component.replace("~1", "/").replace("~0", "~")


class JSONPointer:
    """
    An immutable JSON pointer (RFC 6901) used to tell where in a document a node came from.

    ``JSONPointer() / "data" / "attributes"`` and ``JSONPointer("/data/attributes")`` are equal.
    The root pointer is rendered as ``/``.
    """

    components: typing.Tuple[str, ...]

    def __truediv__(self, component: typing.Union[str, int]) -> "JSONPointer":
        return JSONPointer(components=self.components + (str(component),))

    def __getitem__(self, index: int) -> "JSONPointer":
        return self / index

    def __eq__(self, that: typing.Any) -> bool:
        if not isinstance(that, JSONPointer):
            return NotImplemented
        return self.components == that.components

    def __hash__(self) -> int:
        return hash(self.components)

    def __str__(self) -> str:
        return "/" + "/".join(_escape(c) for c in self.components)

    def __repr__(self) -> str:
        return f"JSONPointer({str(self)!r})"

    def __init__(
        self, path: str = "/", components: typing.Optional[typing.Iterable[str]] = None
    ) -> None:
        if components is not None:
            self.components = tuple(components)
            return
        if path and not path.startswith("/"):
            raise ValueError(f"invalid JSON pointer: {path!r}")
        stripped = path[1:]
        self.components = tuple(_unescape(c) for c in stripped.split("/")) if stripped else ()
