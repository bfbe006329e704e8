import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import Select
from sqlalchemy.orm import Session

from webhook_client.core.config import Settings, settings
from webhook_client.core.errors import InvalidConfig
from webhook_client.infrastructure.db.webhook_call_repository import WebhookCallRepository
from webhook_client.infrastructure.observability.metrics import WEBHOOK_CALLS_PRUNED_TOTAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionConfig:
    delete_after_days: int

    def __post_init__(self) -> None:
        value = self.delete_after_days
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidConfig.invalid_prunable(value)

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "RetentionConfig":
        value = source.delete_after_days
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            value = int(value)
        return cls(delete_after_days=value)

    def threshold(self, now: datetime | None = None) -> datetime:
        return (now or datetime.now(UTC)) - timedelta(days=self.delete_after_days)


def select_prunable(config: RetentionConfig, now: datetime | None = None) -> Select:
    return WebhookCallRepository.older_than(config.threshold(now))


def prune_webhook_calls(db: Session, config: RetentionConfig, now: datetime | None = None) -> int:
    # Stored attachment blobs are left in place.
    threshold = config.threshold(now)
    deleted = WebhookCallRepository(db).delete_older_than(threshold)
    db.commit()
    WEBHOOK_CALLS_PRUNED_TOTAL.inc(deleted)
    logger.info(
        "webhook_calls_pruned deleted=%s threshold=%s delete_after_days=%s",
        deleted,
        threshold.isoformat(),
        config.delete_after_days,
    )
    return deleted
