"""
techdash.errors

Error taxonomy for startup and request handling.

Responsibilities:
- Define the fatal startup error and the per-request error family.
- Convert any request error into its terminal response (single mapping).
"""

from __future__ import annotations

from urllib.parse import urlencode

from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.status import (
    HTTP_303_SEE_OTHER,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_413_CONTENT_TOO_LARGE,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

LOGIN_PATH = "/auth/login"


class StartupFailure(Exception):
    """
    A subsystem failed to initialize; the process must not start listening.
    """

    def __init__(self, subsystem: str, cause: BaseException) -> None:
        super().__init__(subsystem, cause)
        self.subsystem = subsystem
        self.cause = cause

    def __str__(self) -> str:
        return f"subsystem {self.subsystem!r} failed to initialize: {self.cause!r}"


class AuditWriteFailure(Exception):
    """Raised by audit sinks; logged and dropped by the interceptor."""


class RequestError(Exception):
    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class BadRequest(RequestError):
    status_code = HTTP_400_BAD_REQUEST
    code = "bad_request"
    default_message = "Malformed request body"


class Unauthenticated(RequestError):
    status_code = HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(RequestError):
    status_code = HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Insufficient role"


class OriginRejected(RequestError):
    status_code = HTTP_403_FORBIDDEN
    code = "origin_not_allowed"
    default_message = "Origin not allowed"


class NotFound(RequestError):
    status_code = HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "This route does not exist."


class PayloadTooLarge(RequestError):
    status_code = HTTP_413_CONTENT_TOO_LARGE
    code = "payload_too_large"
    default_message = "Request body exceeds the configured limit"


class RateLimited(RequestError):
    status_code = HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"
    default_message = "Too many requests"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class HandlerError(RequestError):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    default_message = "Internal server error"


def _wants_html(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return request.method == "GET" and "text/html" in accept


def error_response(error: RequestError, request: Request) -> Response:
    """
    Map a request error to its terminal response.

    Browsers hitting a protected page without a session are redirected to the
    login page; every other caller gets a JSON body with a stable error code.
    5xx bodies carry the generic message only.
    """

    if isinstance(error, Unauthenticated) and _wants_html(request):
        query = urlencode({"next": request.url.path}, safe="/")
        return RedirectResponse(url=f"{LOGIN_PATH}?{query}", status_code=HTTP_303_SEE_OTHER)

    message = error.default_message if error.status_code >= 500 else error.message
    response = JSONResponse(
        {"error": error.code, "message": message},
        status_code=error.status_code,
    )
    if isinstance(error, RateLimited):
        response.headers["Retry-After"] = str(error.retry_after)
    return response


# --- Module Notes -----------------------------------------------------------
# Handlers may still raise FastAPI's HTTPException for domain-level outcomes;
# those are rendered by FastAPI itself and never reach `error_response`.
