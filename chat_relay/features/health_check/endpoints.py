from fastapi import APIRouter, Depends
from .handler import HealthCheckHandler
from .query import HealthCheckResponse

router = APIRouter()

@router.get("/health", response_model=HealthCheckResponse)
async def health_check(handler: HealthCheckHandler = Depends()) -> HealthCheckResponse:
    """Reports whether the upstream API answers and which model the relay targets."""
    return await handler.handle()
