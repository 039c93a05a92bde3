from __future__ import annotations

import asyncio
import logging
from typing import Callable

import httpx

from ..cancellation import CancellationToken
from ..config import RuntimeSettings
from ..errors import (
    OfflineError,
    RequestCancelledError,
    RequestSetupError,
    RequestTimeoutError,
    TransportError,
)
from .connectivity import ConnectivityProbe, HostConnectivity
from .headers import parse_header_block, prepare_request_headers
from .types import ByteStream, RequestOptions, RequestResult

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]


class _Trace:
    """Send lifecycle notes to the module logger and the caller's sink.

    Example:
        ```python
        trace = _Trace(print)
        trace("load start")
        ```
    """

    def __init__(self, log_fn: LogFn | None) -> None:
        """Remember the optional diagnostic sink.

        Example:
            ```python
            trace = _Trace(None)
            ```
        """
        self._log_fn = log_fn

    def __call__(self, message: str) -> None:
        """Record one lifecycle note.

        A failing sink is logged and never affects the request outcome.

        Example:
            ```python
            trace("offline!")
            ```
        """
        logger.debug("%s", message)
        if self._log_fn is None:
            return
        try:
            self._log_fn(message)
        except Exception:
            logger.exception("Diagnostic sink failed on %r", message)

    async def on_request(self, request: httpx.Request) -> None:
        """Event hook run just before the request goes on the wire.

        Example:
            ```python
            await trace.on_request(httpx.Request("GET", "https://example.test"))
            ```
        """
        self(f"sending request: {request.method} {request.url}")

    async def on_response(self, response: httpx.Response) -> None:
        """Event hook run once the response status and headers arrive.

        Example:
            ```python
            await trace.on_response(response)
            ```
        """
        self(f"response headers: {response.status_code}")


class _Abort:
    """Translate a fired cancellation token into cancelling the transfer task.

    Example:
        ```python
        abort = _Abort(transfer, asyncio.get_running_loop(), trace)
        token.on_cancellation_requested(abort.request)
        ```
    """

    def __init__(self, transfer: asyncio.Future[RequestResult], loop: asyncio.AbstractEventLoop, trace: _Trace) -> None:
        """Bind the abort to one transfer on its event loop.

        Example:
            ```python
            abort = _Abort(transfer, loop, trace)
            ```
        """
        self._transfer = transfer
        self._loop = loop
        self._trace = trace
        self.fired = False

    def request(self) -> None:
        """Abort now on the loop's thread, otherwise schedule it thread-safely.

        Example:
            ```python
            abort.request()
            ```
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._abort()
        else:
            self._loop.call_soon_threadsafe(self._abort)

    def _abort(self) -> None:
        """Cancel the transfer unless it has already settled.

        Example:
            ```python
            abort._abort()
            ```
        """
        if self._transfer.done():
            return
        self.fired = True
        self._transfer.cancel()
        self._trace("cancelled!")


def _response_headers(response: httpx.Response) -> dict[str, str]:
    """Parse the raw response header lines of an httpx response.

    Example:
        ```python
        headers = _response_headers(response)
        ```
    """
    block = "\r\n".join(
        f"{name.decode('latin-1')}: {value.decode('latin-1')}" for name, value in response.headers.raw
    )
    return parse_header_block(block)


def _new_client(options: RequestOptions, transport: httpx.AsyncBaseTransport | None, trace: _Trace) -> httpx.AsyncClient:
    """Create the client carrying auth, deadline and lifecycle hooks.

    Example:
        ```python
        client = _new_client(RequestOptions(url="https://example.test"), None, _Trace(None))
        ```
    """
    auth = httpx.BasicAuth(options.user, options.password or "") if options.user else None
    seconds = options.timeout / 1000 if options.timeout else None
    return httpx.AsyncClient(
        auth=auth,
        timeout=httpx.Timeout(seconds),
        follow_redirects=True,
        transport=transport,
        event_hooks={"request": [trace.on_request], "response": [trace.on_response]},
    )


def _prepare(client: httpx.AsyncClient, options: RequestOptions) -> httpx.Request:
    """Validate the target URL and build the outgoing request.

    Example:
        ```python
        prepared = _prepare(client, RequestOptions(url="https://example.test/data"))
        ```
    """
    url = httpx.URL(options.url)
    if url.scheme not in {"http", "https"} or not url.host:
        raise ValueError(f"Request URL must be an absolute http(s) URL: {options.url!r}")
    return client.build_request(
        options.method or "GET",
        url,
        headers=prepare_request_headers(options),
        content=options.data,
    )


async def _transfer(
    client: httpx.AsyncClient,
    prepared: httpx.Request,
    timeout_ms: int | None,
    trace: _Trace,
    chunk_size: int,
) -> RequestResult:
    """Run the transfer and buffer the body, mapping transport failures.

    Example:
        ```python
        result = await _transfer(client, prepared, 5000, trace, 65536)
        ```
    """
    trace("load start")
    try:
        async with asyncio.timeout(timeout_ms / 1000 if timeout_ms else None):
            response = await client.send(prepared, stream=True)
            try:
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    trace(f"progress: {len(body)} bytes")
            finally:
                await response.aclose()
    except (TimeoutError, httpx.TimeoutException) as exc:
        trace("timeout")
        raise RequestTimeoutError(timeout_ms) from exc
    except httpx.HTTPError as exc:
        trace(f"error: {exc}")
        raise TransportError(str(exc) or type(exc).__name__) from exc
    finally:
        trace("load end")
    trace("load")
    return RequestResult(
        status_code=response.status_code,
        headers=_response_headers(response),
        stream=ByteStream(bytes(body), chunk_size=chunk_size),
    )


async def request(
    options: RequestOptions,
    token: CancellationToken = CancellationToken.NONE,
    log_fn: LogFn | None = None,
    *,
    connectivity: ConnectivityProbe | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    settings: RuntimeSettings | None = None,
) -> RequestResult:
    """Issue one cancellable HTTP request and return status, headers and body stream.

    Exactly one outcome is observable: a `RequestResult`, or one of
    `OfflineError`, `RequestSetupError`, `TransportError`,
    `RequestTimeoutError` or `RequestCancelledError`. A token fired after
    the request settled has no effect.

    Example:
        ```python
        source = CancellationTokenSource()
        result = await request(RequestOptions(url="https://example.test/data", timeout=5000), source.token)
        body = await result.stream.read()
        ```
    """
    settings = settings or RuntimeSettings()
    trace = _Trace(log_fn)
    trace(f"request begin: {options.describe()}")
    probe = connectivity or HostConnectivity(settings.connectivity_probe_host, settings.connectivity_probe_port)
    if not probe.is_online():
        trace("offline!")
        raise OfflineError()

    client: httpx.AsyncClient | None = None
    try:
        client = _new_client(options, transport, trace)
        prepared = _prepare(client, options)
    except Exception as exc:
        trace(f"request setup failed: {exc}")
        if client is not None:
            await client.aclose()
        raise RequestSetupError(f"Unable to prepare request: {exc}") from exc

    try:
        transfer = asyncio.ensure_future(
            _transfer(client, prepared, options.timeout, trace, settings.stream_chunk_size)
        )
        abort = _Abort(transfer, asyncio.get_running_loop(), trace)
        listener = token.on_cancellation_requested(abort.request)
        try:
            return await transfer
        except asyncio.CancelledError:
            if abort.fired:
                raise RequestCancelledError() from None
            raise
        finally:
            listener.dispose()
    finally:
        await client.aclose()
