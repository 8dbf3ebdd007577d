import logging
from contextlib import contextmanager
from typing import Dict, Optional

from opentelemetry.trace import Tracer
from starlette.requests import Request

from relay.utils import client_identity
from relay.utils.exception_logging import log_exception_with_details

logger = logging.getLogger("uvicorn.error")


def log_proxy_request(request: Request, target_url: str) -> None:
    """Emit the one-line record of a proxied request. Never raises."""
    try:
        logger.info(
            f"Proxying request for [{client_identity(request)}] to [{target_url}]"
        )
    except Exception as e:
        log_exception_with_details(
            logger, "[Proxy] Request logging failed:", e, level=logging.DEBUG
        )


@contextmanager
def traced_proxy_request(
    tracer: Tracer,
    request: Request,
    target_url: str,
    prefix: Optional[str] = None,
    extra_attrs: Optional[Dict] = None,
):
    """Context manager to create a span for one proxied request and log it."""
    with tracer.start_as_current_span("proxy_request") as span:
        span.set_attribute("proxy.method", request.method)
        span.set_attribute("proxy.target_url", target_url)
        if prefix:
            span.set_attribute("proxy.route_prefix", prefix)
        if extra_attrs:
            for k, v in extra_attrs.items():
                span.set_attribute(k, v)
        log_proxy_request(request, target_url)
        yield span
