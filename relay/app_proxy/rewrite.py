import posixpath

from relay.app_proxy.errors import InvalidPathError


def clean_path(raw_path: str) -> str:
    """
    Lexically normalize a URL path.

    Repeated slashes collapse, "." and ".." segments resolve, and a trailing
    slash is dropped. Unlike posixpath.normpath, a leading "//" is collapsed too.
    """
    if not raw_path:
        return "."
    cleaned = posixpath.normpath(raw_path)
    if cleaned.startswith("//"):
        cleaned = cleaned[1:]
    return cleaned


def rewrite_path(raw_path: str) -> str:
    """
    Drop the routing prefix segment from a request path.

    "/o/v1/models" becomes "/v1/models". Paths without anything after the
    prefix ("/c", "/") cannot be rewritten and raise InvalidPathError,
    including a bare prefix that would otherwise map to the upstream root.
    """
    parts = clean_path(raw_path).split("/", 2)
    if len(parts) < 3:
        raise InvalidPathError(f"invalid path format: {raw_path!r}")
    return "/" + parts[2]
