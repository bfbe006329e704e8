from time import perf_counter

from fastapi import APIRouter, Response, status
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from webhook_client.infrastructure.cache.redis_client import get_redis_client
from webhook_client.infrastructure.db.session import SessionLocal
from webhook_client.infrastructure.observability.metrics import measure_redis, metrics_response

router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK)
def health_check() -> dict:
    db_status = "up"
    broker_status = "up"
    db_latency_ms: float | None = None
    broker_latency_ms: float | None = None

    try:
        db_started_at = perf_counter()
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        db_latency_ms = round((perf_counter() - db_started_at) * 1000, 2)
    except SQLAlchemyError:
        db_status = "down"

    try:
        redis_client = get_redis_client()
        broker_started_at = perf_counter()
        with measure_redis("health_ping"):
            redis_client.ping()
        broker_latency_ms = round((perf_counter() - broker_started_at) * 1000, 2)
    except RedisError:
        broker_status = "down"

    overall = "ok" if db_status == "up" and broker_status == "up" else "degraded"

    return {
        "status": overall,
        "services": {
            "api": "up",
            "database": db_status,
            "broker": broker_status,
            "db_latency_ms": db_latency_ms,
            "broker_latency_ms": broker_latency_ms,
        },
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check(response: Response) -> dict:
    payload = health_check()
    if payload["services"]["database"] != "up" or payload["services"]["broker"] != "up":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready", "services": payload["services"]}
    return {"status": "ready", "services": payload["services"]}


@router.get("/metrics", include_in_schema=False)
def metrics():
    return metrics_response()
