"""
Transports carry out HTTP requests on behalf of :py:class:`jsonapi_sync.client.Client`.

A transport never raises for a failed request; it reports the failure in the
:py:class:`TransportResponse`, tagged either as a :py:class:`~jsonapi_sync.exceptions.TransportError`
(the request could not be carried out) or as an :py:class:`ApiResponseStatusError`
(the server answered with an error status, and the body is an error document to be parsed).
"""
import abc
import asyncio
import dataclasses
import enum
import json
import logging
import threading
import typing

import httpx

from .exceptions import TransportError
from .serde.types import JSONObject

logger = logging.getLogger(__name__)

MEDIA_TYPE = "application/vnd.api+json"


class Method(enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ApiResponseStatusError(Exception):
    """
    Tells that the server answered with an error status.
    """

    status_code: int

    def __init__(self, status_code: int):
        super().__init__(status_code)
        self.status_code = status_code


@dataclasses.dataclass
class TransportResponse:
    status_code: typing.Optional[int] = None
    body: typing.Optional[bytes] = None
    error: typing.Optional[Exception] = None


class Transport(metaclass=abc.ABCMeta):
    trace_enabled: bool = False

    def _trace(self, msg: str, *args: typing.Any) -> None:
        if self.trace_enabled:
            logger.info(msg, *args)

    @abc.abstractmethod
    async def request(
        self, method: Method, url: str, payload: typing.Optional[JSONObject] = None
    ) -> TransportResponse:
        """
        Issues a request.

        :param Method method: the request method.
        :param str url: the URL.
        :param Optional[JSONObject] payload: the request document, if any.
        :return: the outcome of the request.
        """
        ...  # pragma: nocover


Completion = typing.Callable[
    [typing.Optional[int], typing.Optional[bytes], typing.Optional[Exception]], None
]


class CallbackTransport(typing.Protocol):
    def request(
        self,
        method: Method,
        url: str,
        payload: typing.Optional[JSONObject],
        completion: Completion,
    ) -> None:
        ...  # pragma: nocover


class CallbackTransportAdapter(Transport):
    """
    Adapts a transport that reports completion through a callback, possibly from a thread
    of its own, to :py:class:`Transport`.  Only the first invocation of the callback counts.
    """

    _transport: CallbackTransport

    @property  # type: ignore
    def trace_enabled(self) -> bool:  # type: ignore
        return bool(getattr(self._transport, "trace_enabled", False))

    @trace_enabled.setter
    def trace_enabled(self, value: bool) -> None:
        if hasattr(self._transport, "trace_enabled"):
            setattr(self._transport, "trace_enabled", value)

    async def request(
        self, method: Method, url: str, payload: typing.Optional[JSONObject] = None
    ) -> TransportResponse:
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[TransportResponse]" = loop.create_future()
        lock = threading.Lock()
        completed = False

        def resolve(response: TransportResponse) -> None:
            # the caller may have given up on the request already
            if not future.done():
                future.set_result(response)

        def completion(
            status_code: typing.Optional[int],
            body: typing.Optional[bytes],
            error: typing.Optional[Exception],
        ) -> None:
            nonlocal completed
            with lock:
                if completed:
                    logger.warning("completion of %s %s invoked more than once", method.value, url)
                    return
                completed = True
            loop.call_soon_threadsafe(resolve, TransportResponse(status_code, body, error))

        try:
            self._transport.request(method, url, payload, completion)
        except Exception as e:
            raise TransportError(f"failed to issue {method.value} {url} ({e})") from e
        return await future

    def __init__(self, transport: CallbackTransport):
        self._transport = transport


class HTTPXTransport(Transport):
    """
    The default transport, backed by :py:class:`httpx.AsyncClient`.
    """

    _client: httpx.AsyncClient
    _headers: typing.Dict[str, str]

    async def request(
        self, method: Method, url: str, payload: typing.Optional[JSONObject] = None
    ) -> TransportResponse:
        headers = dict(self._headers)
        content: typing.Optional[bytes] = None
        if payload is not None:
            headers["Content-Type"] = MEDIA_TYPE
            content = json.dumps(payload).encode("utf-8")

        self._trace("%s %s", method.value, url)
        if content is not None:
            self._trace("%s", content.decode("utf-8"))

        try:
            response = await self._client.request(
                method.value, url, content=content, headers=headers
            )
        except httpx.TimeoutException as e:
            error = TransportError(f"{method.value} {url} timed out")
            error.__cause__ = e
            return TransportResponse(error=error)
        except httpx.HTTPError as e:
            error = TransportError(f"{method.value} {url} failed ({e})")
            error.__cause__ = e
            return TransportResponse(error=error)

        self._trace("%d %s", response.status_code, url)
        if response.content:
            self._trace("%s", response.text)

        if response.is_error:
            return TransportResponse(
                response.status_code,
                response.content,
                ApiResponseStatusError(response.status_code),
            )
        return TransportResponse(response.status_code, response.content)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HTTPXTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def __init__(
        self,
        client: typing.Optional[httpx.AsyncClient] = None,
        headers: typing.Optional[typing.Mapping[str, str]] = None,
        trace_enabled: bool = False,
    ):
        self._client = client if client is not None else httpx.AsyncClient()
        self._headers = {"Accept": MEDIA_TYPE}
        if headers is not None:
            self._headers.update(headers)
        self.trace_enabled = trace_enabled
