from redis import Redis

from webhook_client.core.config import settings


def get_redis_client() -> Redis:
    """Client for the Redis instance backing the Celery broker."""
    return Redis.from_url(settings.cache_redis_url, decode_responses=True, socket_timeout=2.0)
