"""
Header relay between the inbound request, the upstream request and the
client response.

All multimaps involved (Starlette Headers/MutableHeaders, httpx.Headers) are
case-insensitive and keep every value of a repeated header in order, so the
copy works on (key, value) pairs rather than on a dict.
"""

from typing import Iterable, List, Tuple, Union

import httpx
from starlette.datastructures import Headers, MutableHeaders

# Client-identity headers a caller could spoof. They feed the request log only
# and are never sent upstream.
CLIENT_IDENTITY_HEADERS = {"x-forwarded-for", "x-real-ip"}

# The HTTP client sets Host for the upstream origin itself
REQUEST_TRANSPORT_HEADERS = {"host"}

# Framing of the client response belongs to the ASGI server
RESPONSE_TRANSPORT_HEADERS = {"transfer-encoding"}

HeaderSource = Union[Headers, httpx.Headers, Iterable[Tuple[str, str]]]


def header_items(source: HeaderSource) -> List[Tuple[str, str]]:
    """Every (key, value) pair of a multimap, in order."""
    if isinstance(source, httpx.Headers):
        return list(source.multi_items())
    if isinstance(source, Headers):
        # Starlette items() already yields one pair per raw header line
        return list(source.items())
    return list(source)


def copy_headers(
    source: HeaderSource, dest: Union[MutableHeaders, List[Tuple[str, str]]]
) -> None:
    """Append every value of every header in source to dest, never overwriting."""
    for key, value in header_items(source):
        if isinstance(dest, MutableHeaders):
            dest.append(key, value)
        else:
            dest.append((key, value))


def strip_client_identity(items: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    return [(k, v) for k, v in items if k.lower() not in CLIENT_IDENTITY_HEADERS]


def outbound_headers(request_headers: HeaderSource) -> httpx.Headers:
    """Headers for the upstream request: the inbound ones minus the deny-list."""
    return httpx.Headers(
        [
            (k, v)
            for k, v in strip_client_identity(header_items(request_headers))
            if k.lower() not in REQUEST_TRANSPORT_HEADERS
        ]
    )


def relay_response_headers(upstream_headers: HeaderSource, dest: MutableHeaders) -> None:
    """Copy upstream response headers onto the client response unchanged."""
    copy_headers(
        [
            (k, v)
            for k, v in header_items(upstream_headers)
            if k.lower() not in RESPONSE_TRANSPORT_HEADERS
        ],
        dest,
    )
