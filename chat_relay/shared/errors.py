"""
Error taxonomy of the relay and the handlers that turn it into HTTP responses.
"""

import logging
from typing import Any, Iterable

from fastapi import FastAPI, Request
from starlette import status as st
from starlette.responses import JSONResponse

from chat_relay.shared.metrics import RELAY_REQUESTS

logger = logging.getLogger("chat-relay")

INVALID_CONVERSATION = "Invalid conversation format."


class ConfigurationError(Exception):
    """Startup configuration is unusable. Always fatal."""


class ConfigurationMissing(ConfigurationError):
    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__("Missing required configuration: " + ", ".join(self.names))


class RelayError(Exception):
    """A per-request failure that ends the exchange with one JSON body."""

    status_code = st.HTTP_500_INTERNAL_SERVER_ERROR
    outcome = "failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def payload(self) -> Any:
        return self.message

    def to_content(self) -> dict:
        return {"error": self.payload}


class InvalidRequest(RelayError):
    status_code = st.HTTP_400_BAD_REQUEST
    outcome = "invalid"

    def __init__(self, message: str = INVALID_CONVERSATION):
        super().__init__(message)


class UpstreamRejected(RelayError):
    outcome = "rejected"

    def __init__(self, status_code: int, payload: Any):
        super().__init__(f"Upstream responded with status {status_code}")
        self.status_code = status_code
        self._payload = payload

    @property
    def payload(self) -> Any:
        return self._payload


class TransportFailure(RelayError):
    outcome = "failed"


def describe_transport_error(exc: Exception) -> str:
    # Several httpx errors (timeouts in particular) stringify to "".
    return str(exc) or exc.__class__.__name__


def unexpected_error_response(request: Request, exc: Exception) -> JSONResponse:
    """500 for anything outside the RelayError taxonomy."""
    logger.exception("Unhandled error while relaying: %s", exc)
    RELAY_REQUESTS.labels(outcome="failed").inc()
    request.state.relay_outcome = "failed"
    return JSONResponse(
        status_code=st.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or exc.__class__.__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def _relay_error(request: Request, exc: RelayError):
        RELAY_REQUESTS.labels(outcome=exc.outcome).inc()
        request.state.relay_outcome = exc.outcome
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    # Last resort for failures raised outside CORSPolicyMiddleware, which
    # answers everything below it itself.
    @app.exception_handler(Exception)
    async def _500_unexpected(request: Request, exc: Exception):
        return unexpected_error_response(request, exc)
