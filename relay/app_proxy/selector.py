import logging
from dataclasses import dataclass
from typing import Mapping

from relay.app_proxy.errors import (
    FeatureDisabledError,
    MissingTargetHostError,
    RouteNotFoundError,
)
from relay.vars import ProxyConfig

logger = logging.getLogger("uvicorn.error")

ANY_SITE_PREFIX = "/p"


@dataclass(frozen=True)
class RouteDecision:
    origin: str
    prefix: str


def select_route(path: str, headers: Mapping[str, str], config: ProxyConfig) -> RouteDecision:
    """
    Pick the upstream origin for a request path.

    Fixed provider prefixes are tried first, then the any-site prefix.
    Matching is a plain string prefix test, so "/openai/..." matches "/o".

    The any-site route sends the request to whatever host the caller names
    in the target host header, with no allow-list. Only enable it where every
    caller is trusted to reach arbitrary hosts from this network.
    """
    for prefix, origin in config.fixed_routes:
        if path.startswith(prefix):
            return RouteDecision(origin=origin, prefix=prefix)

    if path.startswith(ANY_SITE_PREFIX):
        if not config.enable_proxy_any_site:
            raise FeatureDisabledError()
        target_host = headers.get(config.target_host_header)
        if not target_host:
            raise MissingTargetHostError()
        logger.warning(f"[Route] Any-site proxy request to caller-supplied host [{target_host}]")
        return RouteDecision(origin="https://" + target_host, prefix=ANY_SITE_PREFIX)

    raise RouteNotFoundError()
