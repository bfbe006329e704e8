from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Webhook Client"
    app_env: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "webhook_client"
    postgres_user: str = "webhook_client"
    postgres_password: str = "webhook_client"

    redis_host: str = "localhost"
    redis_port: int = 6379

    database_url: str | None = None
    redis_url: str | None = None

    webhook_storage_root: str = "storage/app"
    webhook_blob_namespace: str = "webhooks"
    webhook_configs: list[dict[str, Any]] = [
        {
            "name": "default",
            "store_headers": "*",
            "process_webhook_job": "webhook_client.application.services.webhook_handlers:log_webhook_call",
        }
    ]

    # Raw value; checked by RetentionConfig when pruning runs.
    delete_after_days: int | str | None = 30
    prune_schedule_seconds: float = 86400.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def sqlalchemy_database_uri(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cache_redis_url(self) -> str:
        if self.redis_url:
            return self.redis_url
        return f"redis://{self.redis_host}:{self.redis_port}/0"


settings = Settings()
