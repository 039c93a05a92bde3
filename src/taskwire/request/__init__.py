from .client import request
from .connectivity import ConnectivityProbe, HostConnectivity
from .headers import (
    UNSAFE_REQUEST_HEADERS,
    filter_request_headers,
    format_header_block,
    parse_header_block,
    prepare_request_headers,
)
from .types import ByteStream, RequestOptions, RequestResult

__all__ = [
    "ByteStream",
    "ConnectivityProbe",
    "HostConnectivity",
    "RequestOptions",
    "RequestResult",
    "UNSAFE_REQUEST_HEADERS",
    "filter_request_headers",
    "format_header_block",
    "parse_header_block",
    "prepare_request_headers",
    "request",
]
