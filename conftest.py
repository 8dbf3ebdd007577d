import os
import sys
from typing import Iterable, Optional, Tuple

import pytest
from starlette.requests import Request

SERVICE_ROOT = os.path.dirname(__file__)

# Make `import relay.*` work when the tests run from a plain checkout.
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from relay.vars import ProxyConfig  # noqa: E402


@pytest.fixture
def proxy_config():
    """Default configuration, any-site proxy disabled."""
    return ProxyConfig()


@pytest.fixture
def any_site_config():
    return ProxyConfig(enable_proxy_any_site=True)


@pytest.fixture
def make_request():
    """Build a real Starlette Request from an ASGI scope."""

    def _make_request(
        path: str = "/",
        method: str = "GET",
        query: str = "",
        headers: Optional[Iterable[Tuple[str, str]]] = None,
        client: Optional[Tuple[str, int]] = ("203.0.113.7", 51234),
        body: bytes = b"",
    ) -> Request:
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode("utf-8"),
            "root_path": "",
            "query_string": query.encode("latin-1"),
            "headers": [
                (k.lower().encode("latin-1"), v.encode("latin-1"))
                for k, v in (headers or [])
            ],
            "client": client,
            "server": ("testserver", 80),
        }

        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return _make_request
