"""Extraction of the caller and request details the rate limiter needs.

Identity is taken only from the authenticated principal that an upstream
authentication layer stores on ``request.state.user``. Client-supplied
identity headers are never trusted; their presence without a principal is
logged as a possible bypass attempt.
"""

from dataclasses import dataclass

from starlette.requests import Request
from structlog import get_logger

from src.domain.rate_limiting.value_objects import normalize_identity, normalize_ip

logger = get_logger(__name__)

SPOOFABLE_IDENTITY_HEADERS = ("X-User-ID", "X-User-Name")


@dataclass(frozen=True)
class RequestContext:
    """Caller identity, IP, method and path of the current request."""

    identity: str
    ip_address: str
    http_method: str
    path: str


def _principal_name(user: object) -> str | None:
    for attribute in ("username", "name", "id"):
        value = getattr(user, attribute, None)
        if value:
            return str(value)
    return None


def extract_request_context(request: Request) -> RequestContext:
    """Build a ``RequestContext`` from a Starlette request.

    Defaults: identity "Anonymous", IP "Unknown" ("::1" becomes "127.0.0.1"),
    method "UNKNOWN", path "/".
    """
    client_ip = request.client.host if request.client else None

    identity = None
    user = getattr(getattr(request, "state", None), "user", None)
    if user is not None:
        identity = _principal_name(user)
    else:
        suspicious_headers = [h for h in SPOOFABLE_IDENTITY_HEADERS if h in request.headers]
        if suspicious_headers:
            logger.warning(
                "identity_header_ignored",
                headers=suspicious_headers,
                client_ip=client_ip,
                path=request.url.path,
            )

    return RequestContext(
        identity=normalize_identity(identity),
        ip_address=normalize_ip(client_ip),
        http_method=request.method or "UNKNOWN",
        path=request.url.path or "/",
    )
