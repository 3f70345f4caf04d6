import time
import uuid
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from chat_relay.shared.config import CorsConfig, CorsPolicy, logger
from chat_relay.shared.errors import unexpected_error_response

REQUEST_ID_HEADER = "X-Request-ID"

class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every exchange with a request ID, reusing the caller's when given,
    and echoes it back so relay logs can be matched to browser reports.
    """
    async def dispatch(
        self, request: Request, call_next
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

class CORSPolicyMiddleware(BaseHTTPMiddleware):
    """
    Applies the configured CORS policy to every response and answers
    preflight requests on any path without reaching the routes.
    Unexpected errors are turned into the JSON 500 here so that they
    still carry the CORS headers.
    """
    def __init__(self, app: ASGIApp, cors: CorsConfig):
        super().__init__(app)
        self._cors = cors

    def allow_origin(self, request: Request) -> str | None:
        if self._cors.policy is CorsPolicy.FIXED:
            return self._cors.allowed_origin
        if self._cors.policy is CorsPolicy.REFLECT:
            return request.headers.get("origin")
        return "*"

    def cors_headers(self, request: Request) -> dict:
        headers = {
            "Access-Control-Allow-Methods": self._cors.allow_methods,
            "Access-Control-Allow-Headers": self._cors.allow_headers,
        }
        if origin := self.allow_origin(request):
            headers["Access-Control-Allow-Origin"] = origin
        if self._cors.policy is CorsPolicy.REFLECT:
            headers["Vary"] = "Origin"
        return headers

    async def dispatch(
        self, request: Request, call_next
    ) -> Response:
        if request.method == "OPTIONS":
            request.state.relay_outcome = "preflight"
            return Response(status_code=200, headers=self.cors_headers(request))
        try:
            response = await call_next(request)
        except Exception as exc:
            response = unexpected_error_response(request, exc)
        response.headers.update(self.cors_headers(request))
        return response

async def log_relay_exchange(
    request: Request, call_next
) -> Response:
    """
    Logs one record per exchange with its relay outcome and sets X-Process-Time.
    Streamed replies are logged once their headers are committed, so their
    final outcome (completed, aborted or cancelled) is logged by the stream itself.
    """
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.6f}"

    # Upstream and relay layers both stamp a date; drop it rather than send two.
    if "date" in response.headers:
        del response.headers["date"]

    logger.info(
        "Relay exchange %s %s -> %s (%s)",
        request.method, request.url.path, response.status_code,
        getattr(request.state, "relay_outcome", "unrouted"),
        extra={
            "req_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "outcome": getattr(request.state, "relay_outcome", "unrouted"),
            "duration_sec": round(elapsed, 4),
        }
    )
    return response
