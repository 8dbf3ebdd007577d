import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple

SERVICE_NAME = os.getenv("SERVICE_NAME", "relay-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "9000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

ENABLE_PROXY_ANY_SITE = (
    os.getenv("ENABLE_PROXY_ANY_SITE", "false").lower() == "true"
)
OPENAI_UPSTREAM = os.getenv("OPENAI_UPSTREAM", "https://api.openai.com").rstrip("/")
CLOUDFLARE_UPSTREAM = os.getenv(
    "CLOUDFLARE_UPSTREAM", "https://api.cloudflare.com"
).rstrip("/")
TARGET_HOST_HEADER = os.getenv("TARGET_HOST_HEADER", "X-Target-Host")

PROXY_BUFFER_SIZE = int(os.getenv("PROXY_BUFFER_SIZE", "1024"))
PROXY_BUFFER_MAX_IDLE = int(os.getenv("PROXY_BUFFER_MAX_IDLE", "256"))
# Unset means the upstream call may wait indefinitely
PROXY_TIMEOUT = os.getenv("PROXY_TIMEOUT", "")
PROXY_FOLLOW_REDIRECTS = (
    os.getenv("PROXY_FOLLOW_REDIRECTS", "true").lower() == "true"
)

LANDING_PAGE_PATH = os.getenv(
    "LANDING_PAGE_PATH", str(Path(__file__).parent / "static" / "index.html")
)

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")


def _parse_timeout(raw: str) -> Optional[float]:
    raw = (raw or "").strip()
    if not raw:
        return None
    return float(raw)


@dataclass(frozen=True)
class ProxyConfig:
    """
    Startup configuration for the proxy.

    Built once when the process starts and shared read-only by every request,
    so it needs no locking.
    """

    port: int = 9000
    host: str = "0.0.0.0"
    enable_proxy_any_site: bool = False
    openai_upstream: str = "https://api.openai.com"
    cloudflare_upstream: str = "https://api.cloudflare.com"
    target_host_header: str = "X-Target-Host"
    buffer_size: int = 1024
    buffer_max_idle: int = 256
    timeout: Optional[float] = None
    follow_redirects: bool = True
    landing_page_path: str = LANDING_PAGE_PATH
    log_level: str = "info"

    @property
    def fixed_routes(self) -> Tuple[Tuple[str, str], ...]:
        """Prefix to origin pairs, in match order."""
        return (
            ("/o", self.openai_upstream),
            ("/c", self.cloudflare_upstream),
        )

    def with_overrides(self, **overrides) -> "ProxyConfig":
        return replace(
            self, **{k: v for k, v in overrides.items() if v is not None}
        )


def load_config() -> ProxyConfig:
    """Build a ProxyConfig from the environment."""
    return ProxyConfig(
        port=PORT,
        host=HOST,
        enable_proxy_any_site=ENABLE_PROXY_ANY_SITE,
        openai_upstream=OPENAI_UPSTREAM,
        cloudflare_upstream=CLOUDFLARE_UPSTREAM,
        target_host_header=TARGET_HOST_HEADER,
        buffer_size=PROXY_BUFFER_SIZE,
        buffer_max_idle=PROXY_BUFFER_MAX_IDLE,
        timeout=_parse_timeout(PROXY_TIMEOUT),
        follow_redirects=PROXY_FOLLOW_REDIRECTS,
        landing_page_path=LANDING_PAGE_PATH,
        log_level=LOG_LEVEL,
    )
