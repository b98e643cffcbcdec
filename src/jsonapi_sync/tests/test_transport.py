import asyncio
import json
import logging
import threading

import httpx
import pytest

from ..exceptions import TransportError
from ..transport import (
    MEDIA_TYPE,
    ApiResponseStatusError,
    CallbackTransportAdapter,
    HTTPXTransport,
    Method,
)


class ThreadedCallbackTransport:
    """
    Completes every request from a thread of its own, possibly more than once.
    """

    trace_enabled = False

    def __init__(self, status_code=200, body=b"{}", error=None, times=1):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.times = times
        self.requests = []

    def request(self, method, url, payload, completion):
        self.requests.append((method, url, payload))

        def run():
            for _ in range(self.times):
                completion(self.status_code, self.body, self.error)

        threading.Thread(target=run).start()


class BrokenCallbackTransport:
    def request(self, method, url, payload, completion):
        raise RuntimeError("no network")


class TestCallbackTransportAdapter:
    @pytest.mark.asyncio
    async def test_completion_from_another_thread(self):
        transport = ThreadedCallbackTransport(body=b'{"data": null}')
        target = CallbackTransportAdapter(transport)
        response = await target.request(Method.GET, "/articles")
        assert response.status_code == 200
        assert response.body == b'{"data": null}'
        assert response.error is None
        assert transport.requests == [(Method.GET, "/articles", None)]

    @pytest.mark.asyncio
    async def test_only_first_completion_counts(self, caplog):
        transport = ThreadedCallbackTransport(times=3)
        target = CallbackTransportAdapter(transport)
        with caplog.at_level(logging.WARNING, logger="jsonapi_sync.transport"):
            response = await target.request(Method.DELETE, "/articles/1")
            # let the remaining invocations run
            await asyncio.sleep(0.1)
        assert response.status_code == 200
        assert "invoked more than once" in caplog.text

    @pytest.mark.asyncio
    async def test_error_is_reported(self):
        error = TransportError("connection reset")
        target = CallbackTransportAdapter(ThreadedCallbackTransport(None, None, error))
        response = await target.request(Method.GET, "/articles")
        assert response.error is error

    @pytest.mark.asyncio
    async def test_failure_to_issue(self):
        target = CallbackTransportAdapter(BrokenCallbackTransport())
        with pytest.raises(TransportError) as e:
            await target.request(Method.GET, "/articles")
        assert isinstance(e.value.__cause__, RuntimeError)

    def test_trace_enabled_is_forwarded(self):
        transport = ThreadedCallbackTransport()
        target = CallbackTransportAdapter(transport)
        assert not target.trace_enabled
        target.trace_enabled = True
        assert transport.trace_enabled
        assert target.trace_enabled


def make_transport(handler, **kwargs):
    return HTTPXTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)), **kwargs)


class TestHTTPXTransport:
    @pytest.mark.asyncio
    async def test_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, content=b'{"data": null}')

        target = make_transport(handler, headers={"Authorization": "Bearer x"})
        response = await target.request(
            Method.POST, "https://example.com/articles", {"data": {"type": "articles"}}
        )
        await target.aclose()

        assert response.status_code == 201
        assert response.body == b'{"data": null}'
        assert response.error is None

        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == "https://example.com/articles"
        assert request.headers["Content-Type"] == MEDIA_TYPE
        assert request.headers["Accept"] == MEDIA_TYPE
        assert request.headers["Authorization"] == "Bearer x"
        assert json.loads(request.content) == {"data": {"type": "articles"}}

    @pytest.mark.asyncio
    async def test_request_without_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        async with make_transport(handler) as target:
            response = await target.request(Method.DELETE, "https://example.com/articles/1")
        assert response.status_code == 204
        assert response.body == b""
        assert response.error is None
        assert "Content-Type" not in seen[0].headers
        assert seen[0].content == b""

    @pytest.mark.asyncio
    async def test_error_status(self):
        def handler(request):
            return httpx.Response(404, content=b'{"errors": [{"status": "404"}]}')

        async with make_transport(handler) as target:
            response = await target.request(Method.GET, "https://example.com/articles/1")
        assert response.status_code == 404
        assert response.body == b'{"errors": [{"status": "404"}]}'
        assert isinstance(response.error, ApiResponseStatusError)
        assert response.error.status_code == 404

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_transport(handler) as target:
            response = await target.request(Method.GET, "https://example.com/articles")
        assert response.status_code is None
        assert isinstance(response.error, TransportError)
        assert isinstance(response.error.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_transport(handler) as target:
            response = await target.request(Method.GET, "https://example.com/articles")
        assert isinstance(response.error, TransportError)
        assert "timed out" in str(response.error)

    @pytest.mark.asyncio
    async def test_trace(self, caplog):
        def handler(request):
            return httpx.Response(200, content=b'{"data": []}')

        async with make_transport(handler, trace_enabled=True) as target:
            with caplog.at_level(logging.INFO, logger="jsonapi_sync.transport"):
                await target.request(Method.GET, "https://example.com/articles")
        assert "GET https://example.com/articles" in caplog.text
        assert '{"data": []}' in caplog.text
