import httpx
from fastapi import Depends
from chat_relay.shared.dependencies import get_config, get_http_client
from chat_relay.shared.config import RelayConfig, logger
from .query import HealthCheckResponse

class HealthCheckHandler:
    def __init__(
        self,
        http_client: httpx.AsyncClient = Depends(get_http_client),
        config: RelayConfig = Depends(get_config),
    ):
        self._http_client = http_client
        self._base_url = config.upstream.base_url
        self._model = config.upstream.model

    async def handle(self) -> HealthCheckResponse:
        services_status = {}

        # Any answer below 500 means the upstream API is reachable.
        try:
            health_resp = await self._http_client.head(self._base_url, timeout=5.0)
            services_status["upstream_api"] = "up" if health_resp.status_code < 500 else "down"
        except httpx.HTTPError as e:
            logger.error("Upstream API health check failed: %s", str(e))
            services_status["upstream_api"] = "down"

        overall_status = "ok" if all(s == "up" for s in services_status.values()) else "error"
        return HealthCheckResponse(status=overall_status, model=self._model, services=services_status)
