import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi import Request
from fastapi.responses import Response, StreamingResponse
from opentelemetry import trace

from relay.app_proxy.buffer_pool import BufferPool
from relay.app_proxy.errors import InvalidPathError, UpstreamDispatchError
from relay.app_proxy.headers import outbound_headers, relay_response_headers
from relay.app_proxy.rewrite import rewrite_path
from relay.app_proxy.selector import RouteDecision
from relay.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from relay.utils.traced_requests import traced_proxy_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")


def build_target_url(origin: str, rewritten_path: str, query: str) -> str:
    """Origin plus rewritten path, with the raw query appended only if non-empty."""
    target_url = origin + rewritten_path
    if query:
        target_url += "?" + query
    return target_url


def request_body(request: Request) -> Optional[AsyncIterator[bytes]]:
    """
    The inbound body as a stream, or None for requests that carry no body.

    The stream is handed to the upstream request as-is, so the body is never
    read into memory.
    """
    if "content-length" in request.headers or "transfer-encoding" in request.headers:
        return request.stream()
    return None


async def _raw_chunks(upstream: httpx.Response) -> AsyncIterator[bytes]:
    # A response whose body was loaded eagerly (in-memory content) can no
    # longer be streamed raw.
    if upstream.is_stream_consumed:
        yield upstream.content
        return
    async for data in upstream.aiter_raw():
        yield data


async def relay_body(
    upstream: httpx.Response, buffer_pool: BufferPool, target_url: str
) -> AsyncIterator[bytes]:
    """
    Yield the raw upstream body in slices no larger than one pooled buffer.

    Each slice becomes its own ASGI body message, which the server writes out
    immediately. The buffer goes back to the pool and the upstream response is
    closed however the loop ends, including client disconnects.
    """
    try:
        with buffer_pool.borrow() as buffer, memoryview(buffer) as view:
            size = len(buffer)
            async for data in _raw_chunks(upstream):
                if not data:
                    break
                for offset in range(0, len(data), size):
                    n = min(size, len(data) - offset)
                    view[:n] = data[offset : offset + n]
                    yield bytes(view[:n])
    except (httpx.HTTPError, httpx.StreamError) as e:
        log_exception_with_details(
            logger, f"[Proxy] Reading response body from {target_url} failed:", e
        )
        raise
    finally:
        await upstream.aclose()


async def _chain(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    try:
        yield first
        async for chunk in rest:
            yield chunk
    finally:
        await rest.aclose()


async def stream_upstream_response(
    upstream: httpx.Response, buffer_pool: BufferPool, target_url: str
) -> Response:
    """
    Relay status, headers and body of an upstream response to the client.

    The first slice is read before the status line is committed, so a failure
    there still turns into a 500. Later failures can only abort the connection.
    """
    body = relay_body(upstream, buffer_pool, target_url)
    try:
        first = await body.__anext__()
    except StopAsyncIteration:
        content = iter(())
    except (httpx.HTTPError, httpx.StreamError):
        raise UpstreamDispatchError("Error reading response")
    else:
        content = _chain(first, body)

    response = StreamingResponse(content, status_code=upstream.status_code)
    relay_response_headers(upstream.headers, response.headers)
    return response


async def forward_request(
    request: Request,
    decision: RouteDecision,
    client: httpx.AsyncClient,
    buffer_pool: BufferPool,
) -> Response:
    """
    Proxy one request to the origin chosen by route selection.

    The routing prefix is dropped from the path, the raw query string is kept,
    client-identity headers are stripped and the body is streamed through.
    Transport failures are answered with 500 and never retried.
    """
    path = request.url.path
    try:
        rewritten_path = rewrite_path(path)
    except InvalidPathError as e:
        logger.error(f"[Proxy] Invalid path [{path}] while rewrite: {e.detail}")
        raise InvalidPathError()

    target_url = build_target_url(decision.origin, rewritten_path, request.url.query)

    with traced_proxy_request(tracer, request, target_url, decision.prefix) as span:
        try:
            upstream_request = client.build_request(
                request.method,
                target_url,
                headers=outbound_headers(request.headers),
                content=request_body(request),
            )
        except httpx.InvalidURL as e:
            log_exception_with_details(
                logger, f"[Proxy] Creating proxy request for {target_url} failed:", e
            )
            span.set_attribute("proxy.error", "invalid_url")
            raise UpstreamDispatchError("Error creating proxy request")

        try:
            upstream = await client.send(upstream_request, stream=True)
        except httpx.HTTPError as e:
            log_exception_with_details(
                logger, f"[Proxy] Sending proxy request to {target_url} failed:", e
            )
            span.set_attribute("proxy.error", type(e).__name__)
            raise UpstreamDispatchError(format_exception_message(e))

        span.set_attribute("proxy.status_code", upstream.status_code)
        return await stream_upstream_response(upstream, buffer_pool, target_url)
