from fastapi import APIRouter

from webhook_client.interfaces.api.health import router as health_router
from webhook_client.interfaces.api.webhooks import router as webhooks_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(webhooks_router)
