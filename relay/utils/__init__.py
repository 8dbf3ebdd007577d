from typing import Optional

from starlette.requests import Request


def client_identity(request: Request) -> str:
    """
    Best-effort client address for logging.

    Prefers X-Forwarded-For, then X-Real-IP, then the transport peer. The
    forwarded headers are caller-supplied and are trusted for logging only.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return peer_address(request) or "unknown"


def peer_address(request: Request) -> Optional[str]:
    client = request.client
    if not client:
        return None
    if client.port is None:
        return client.host
    return f"{client.host}:{client.port}"
