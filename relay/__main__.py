"""
Start the relay proxy.

    python -m relay --port 9000 --enable-proxy-any-site
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn

from relay.vars import ProxyConfig, load_config

logger = logging.getLogger("uvicorn.error")


def build_parser(defaults: ProxyConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relay",
        description="Path-prefix HTTP forwarding proxy with streamed responses.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=defaults.port,
        help=f"The port on which the service runs (default: {defaults.port})",
    )
    parser.add_argument(
        "--host",
        default=defaults.host,
        help=f"Interface to bind (default: {defaults.host})",
    )
    parser.add_argument(
        "--enable-proxy-any-site",
        action="store_true",
        default=defaults.enable_proxy_any_site,
        help="Enable the /p route, which proxies to the host named in X-Target-Host",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        choices=["critical", "error", "warning", "info", "debug", "trace"],
    )
    return parser


def parse_config(argv: Optional[Sequence[str]] = None) -> ProxyConfig:
    defaults = load_config()
    args = build_parser(defaults).parse_args(argv)
    return defaults.with_overrides(
        port=args.port,
        host=args.host,
        enable_proxy_any_site=args.enable_proxy_any_site,
        log_level=args.log_level,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = parse_config(argv)

    from relay.server import create_app

    server_config = uvicorn.Config(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level,
        # Response headers come from the upstream only
        server_header=False,
        date_header=False,
    )
    logger.info(
        f"Service running on http://127.0.0.1:{config.port} (Press CTRL+C to quit)"
    )
    if config.enable_proxy_any_site:
        logger.warning("Any-site proxy route /p is enabled")
    # A port that cannot be bound ends the process from inside uvicorn
    uvicorn.Server(server_config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
