import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, Response

from relay.app_proxy.errors import ProxyError
from relay.app_proxy.route import forward_request
from relay.app_proxy.selector import select_route
from relay.vars import ProxyConfig

router = APIRouter()

logger = logging.getLogger("uvicorn.error")


def landing_page(config: ProxyConfig) -> HTMLResponse:
    """Serve the static landing page, re-read on every request."""
    try:
        content = Path(config.landing_page_path).read_bytes()
    except OSError as e:
        logger.error(f"[Landing] reading {config.landing_page_path}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return HTMLResponse(content)


async def handle_request(request: Request) -> Response:
    """Landing page on "/", otherwise route by prefix and proxy."""
    state = request.app.state
    config: ProxyConfig = state.config

    if request.url.path == "/":
        return landing_page(config)

    try:
        decision = select_route(request.url.path, request.headers, config)
    except ProxyError as e:
        logger.info(
            f"[Route] {request.method} {request.url.path} rejected with {e.status_code}: {e.detail}"
        )
        raise

    return await forward_request(request, decision, state.http_client, state.buffer_pool)


# No method filter: extension methods such as PROPFIND are proxied too
router.add_route("/{path:path}", handle_request, include_in_schema=False)
