from fastapi import HTTPException


class ProxyError(HTTPException):
    """Base for proxy failures that map directly onto an HTTP status."""

    status = 500
    default_detail = "Internal Server Error"

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status, detail=detail or self.default_detail)


class InvalidPathError(ProxyError):
    status = 400
    default_detail = "Invalid request path"


class MissingTargetHostError(ProxyError):
    status = 400
    default_detail = "Bad Request"


class FeatureDisabledError(ProxyError):
    status = 403
    default_detail = "The any site proxy function is disabled."


class RouteNotFoundError(ProxyError):
    status = 404
    default_detail = "Not Found"


class UpstreamDispatchError(ProxyError):
    """The upstream could not be reached. The detail carries the transport error text."""

    status = 500
