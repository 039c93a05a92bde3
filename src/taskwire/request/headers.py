from __future__ import annotations

import re
from typing import Mapping

from .types import RequestOptions

# The transport computes these itself.
UNSAFE_REQUEST_HEADERS = frozenset({"User-Agent", "Accept-Encoding", "Content-Length"})
PROXY_AUTHORIZATION_HEADER = "Proxy-Authorization"
_LINE_BREAK = re.compile(r"\r\n|\n|\r")


def filter_request_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Return a copy of headers without the reserved names (case-sensitive match).

    Example:
        ```python
        safe = filter_request_headers({"User-Agent": "x", "X-Trace": "abc"})
        ```
    """
    if not headers:
        return {}
    return {name: value for name, value in headers.items() if name not in UNSAFE_REQUEST_HEADERS}


def prepare_request_headers(options: RequestOptions) -> dict[str, str]:
    """Merge the proxy token and drop reserved headers without touching `options`.

    Example:
        ```python
        headers = prepare_request_headers(RequestOptions(url="https://a.test", proxy_authorization="Basic x"))
        ```
    """
    merged = dict(options.headers or {})
    if options.proxy_authorization:
        merged[PROXY_AUTHORIZATION_HEADER] = options.proxy_authorization
    return filter_request_headers(merged)


def parse_header_block(block: str) -> dict[str, str]:
    """Parse raw response header lines into a lowercase-name mapping.

    Duplicate names keep the last value. A line without a colon is stored
    whole under the empty name.

    Example:
        ```python
        headers = parse_header_block("Content-Type: text/plain\\r\\nX-A: 1")
        ```
    """
    headers: dict[str, str] = {}
    for line in _LINE_BREAK.split(block):
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            name, value = "", line
        headers[name.strip().lower()] = value.strip()
    return headers


def format_header_block(headers: Mapping[str, str]) -> str:
    """Serialize a header mapping back into CRLF-separated header lines.

    Example:
        ```python
        block = format_header_block({"content-type": "text/plain"})
        ```
    """
    return "\r\n".join(f"{name}: {value}" for name, value in headers.items())
