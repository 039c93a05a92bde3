from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import AsyncIterator, Mapping

_REDACTED = "***"


@dataclass(slots=True)
class RequestOptions:
    """Descriptor of one outbound HTTP request.

    Example:
        ```python
        options = RequestOptions(url="https://example.test/data", headers={"X-Trace": "abc"}, timeout=5000)
        ```
    """

    url: str
    method: str = "GET"
    data: bytes | None = None
    headers: Mapping[str, str] | None = None
    user: str | None = None
    password: str | None = None
    proxy_authorization: str | None = None
    timeout: int | None = None

    def describe(self) -> str:
        """Return a JSON rendering for diagnostics with secrets redacted.

        Example:
            ```python
            log(f"request begin: {options.describe()}")
            ```
        """
        payload = {
            "type": self.method,
            "url": self.url,
            "headers": dict(self.headers or {}),
            "data": None if self.data is None else f"<{len(self.data)} bytes>",
            "user": self.user,
            "password": _REDACTED if self.password else None,
            "proxyAuthorization": _REDACTED if self.proxy_authorization else None,
            "timeout": self.timeout,
        }
        return json.dumps({k: v for k, v in payload.items() if v is not None})


class ByteStream:
    """Finite, single-pass byte stream over a buffered response body.

    Example:
        ```python
        stream = ByteStream(b"ok")
        body = await stream.read()
        ```
    """

    def __init__(self, data: bytes, *, chunk_size: int = 65536) -> None:
        """Wrap a fully buffered body.

        Example:
            ```python
            stream = ByteStream(b"payload", chunk_size=2)
            ```
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._data = memoryview(data)
        self._offset = 0
        self._chunk_size = chunk_size

    @property
    def consumed(self) -> bool:
        """Return whether every byte has been handed out.

        Example:
            ```python
            assert stream.consumed
            ```
        """
        return self._offset >= len(self._data)

    def __aiter__(self) -> AsyncIterator[bytes]:
        """Iterate over the remaining chunks.

        Example:
            ```python
            async for chunk in stream:
                sink.write(chunk)
            ```
        """
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[bytes]:
        """Yield remaining bytes in chunk-sized pieces, advancing the cursor.

        Example:
            ```python
            chunks = [c async for c in stream._chunks()]
            ```
        """
        while not self.consumed:
            end = self._offset + self._chunk_size
            chunk = bytes(self._data[self._offset:end])
            self._offset = min(end, len(self._data))
            yield chunk

    async def read(self) -> bytes:
        """Return all bytes not consumed yet.

        Example:
            ```python
            text = (await stream.read()).decode("utf-8")
            ```
        """
        chunk = bytes(self._data[self._offset:])
        self._offset = len(self._data)
        return chunk


@dataclass(frozen=True, slots=True)
class RequestResult:
    """Completed response: status code, parsed headers and body stream.

    Example:
        ```python
        result = RequestResult(status_code=200, headers={"content-type": "text/plain"}, stream=ByteStream(b"ok"))
        ```
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    stream: ByteStream = field(default_factory=lambda: ByteStream(b""))
