# chat_relay/features/relay_chat/client.py
import json
import time
from enum import Enum
from typing import Any, AsyncIterator

import anyio
import httpx

from chat_relay.shared.config import UpstreamConfig, logger
from chat_relay.shared.errors import TransportFailure, UpstreamRejected, describe_transport_error
from chat_relay.shared.metrics import ACTIVE_STREAMS, FORWARDED_BYTES, RELAY_REQUESTS
from chat_relay.shared.utils import mask_key

from .command import OutboundPayload

class RelayOutcome(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"

def build_timeout(upstream: UpstreamConfig) -> httpx.Timeout:
    """Connect/write/pool share connect_timeout; read is the idle gap between chunks."""
    return httpx.Timeout(upstream.connect_timeout, read=upstream.read_timeout)

def decode_error_payload(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError:
        return body.decode("utf-8", errors="replace")

class UpstreamChatClient:
    """Opens streamed chat completions upstream and forwards their bytes. No retries."""

    def __init__(self, http_client: httpx.AsyncClient, upstream: UpstreamConfig):
        self._client = http_client
        self._upstream = upstream

    @property
    def completions_url(self) -> str:
        return f"{self._upstream.base_url.rstrip('/')}/chat/completions"

    async def open_stream(self, payload: OutboundPayload) -> httpx.Response:
        """
        Sends the payload and waits for the status line and headers only.

        Returns the still-open response on 2xx. Any other status is read in
        full (bounded), closed and raised as UpstreamRejected; failures before
        a status arrives are raised as TransportFailure.
        """
        api_key = self._upstream.api_key
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        upstream_req = self._client.build_request(
            "POST", self.completions_url, json=payload.model_dump(), headers=headers
        )

        logger.info(
            "Relaying %d messages to model '%s' using key %s.",
            len(payload.messages), payload.model, mask_key(api_key)
        )
        try:
            response = await self._client.send(upstream_req, stream=True)
        except httpx.HTTPError as e:
            logger.error("Request to upstream failed: %s", describe_transport_error(e))
            raise TransportFailure(describe_transport_error(e)) from e

        if response.is_success:
            logger.info("Stream started with upstream status %s.", response.status_code)
            return response

        try:
            body = await self._read_error_body(response)
        except httpx.HTTPError as e:
            logger.error("Failed reading upstream error body: %s", describe_transport_error(e))
            raise TransportFailure(describe_transport_error(e)) from e
        finally:
            await response.aclose()

        logger.error(
            "HTTP error from upstream: %s - %s",
            response.status_code, body[:500].decode("utf-8", errors="replace")
        )
        raise UpstreamRejected(response.status_code, decode_error_payload(body))

    async def _read_error_body(self, response: httpx.Response) -> bytes:
        limit = self._upstream.max_error_body_bytes
        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) >= limit:
                logger.warning("Upstream error body exceeds %d bytes, truncating.", limit)
                break
        return bytes(body[:limit])

    async def iter_chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """
        Yields upstream chunks verbatim and in order until the stream ends.

        A broken upstream stream ends the iteration quietly since the status
        and headers are already committed downstream. The upstream response
        is closed on every exit, including client disconnects.
        """
        outcome = RelayOutcome.COMPLETED
        max_seconds = self._upstream.max_stream_seconds
        deadline = time.monotonic() + max_seconds if max_seconds else None

        ACTIVE_STREAMS.inc()
        try:
            async for chunk in response.aiter_bytes():
                FORWARDED_BYTES.inc(len(chunk))
                yield chunk
                if deadline is not None and time.monotonic() > deadline:
                    outcome = RelayOutcome.ABORTED
                    logger.warning("Stream exceeded %s seconds, closing it.", max_seconds)
                    break
        except (anyio.get_cancelled_exc_class(), GeneratorExit):
            outcome = RelayOutcome.CANCELLED
            logger.warning("Client went away mid-stream, closing upstream stream.")
            raise
        except Exception as err:
            outcome = RelayOutcome.ABORTED
            logger.error("Streaming error: %s", describe_transport_error(err))
        finally:
            ACTIVE_STREAMS.dec()
            RELAY_REQUESTS.labels(outcome=outcome.value).inc()
            with anyio.CancelScope(shield=True):
                await response.aclose()
            logger.info("Stream %s.", outcome.value)
