from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from webhook_client.application.services.retention_service import (
    RetentionConfig,
    prune_webhook_calls,
    select_prunable,
)
from webhook_client.core.config import Settings
from webhook_client.core.errors import InvalidConfig
from webhook_client.domain.models.webhook_call import WebhookCall


def _call_created(db, *, days_ago: int, now: datetime, name: str) -> WebhookCall:
    webhook_call = WebhookCall(
        name=name,
        url=f"https://example.test/webhooks/{name}",
        headers={},
        payload={"age": days_ago},
        created_at=now - timedelta(days=days_ago),
    )
    db.add(webhook_call)
    return webhook_call


def _remaining_names(db) -> list[str]:
    return sorted(db.execute(select(WebhookCall.name)).scalars().all())


@pytest.mark.parametrize("value", [None, "30", 30.0, 7.5, True, -1])
def test_invalid_retention_values_fail_fast(value) -> None:
    with pytest.raises(InvalidConfig):
        RetentionConfig(value)


def test_invalid_config_deletes_nothing(db) -> None:
    now = datetime.now(UTC)
    _call_created(db, days_ago=400, now=now, name="ancient")
    db.commit()

    with pytest.raises(InvalidConfig):
        prune_webhook_calls(db, RetentionConfig.from_settings(Settings(delete_after_days=None)))

    assert _remaining_names(db) == ["ancient"]


def test_prune_deletes_only_calls_past_retention(db) -> None:
    now = datetime.now(UTC)
    _call_created(db, days_ago=31, now=now, name="old")
    _call_created(db, days_ago=29, now=now, name="recent")
    _call_created(db, days_ago=0, now=now, name="fresh")
    db.commit()

    deleted = prune_webhook_calls(db, RetentionConfig(delete_after_days=30), now=now)

    assert deleted == 1
    assert _remaining_names(db) == ["fresh", "recent"]


def test_zero_days_prunes_everything_older_than_now(db) -> None:
    now = datetime.now(UTC)
    _call_created(db, days_ago=1, now=now, name="yesterday")
    db.commit()

    assert prune_webhook_calls(db, RetentionConfig(0), now=now) == 1
    assert _remaining_names(db) == []


def test_select_prunable_matches_prune(db) -> None:
    now = datetime.now(UTC)
    _call_created(db, days_ago=90, now=now, name="older")
    _call_created(db, days_ago=45, now=now, name="old")
    _call_created(db, days_ago=10, now=now, name="recent")
    db.commit()

    prunable = db.execute(select_prunable(RetentionConfig(30), now=now)).scalars().all()
    assert [webhook_call.name for webhook_call in prunable] == ["older", "old"]

    count = db.execute(select(func.count()).select_from(select_prunable(RetentionConfig(30), now=now).subquery()))
    assert count.scalar_one() == 2


def test_retention_config_from_settings() -> None:
    config = RetentionConfig.from_settings(Settings(delete_after_days=14))
    now = datetime(2026, 10, 17, tzinfo=UTC)
    assert config.delete_after_days == 14
    assert config.threshold(now) == datetime(2026, 10, 3, tzinfo=UTC)


def test_retention_read_from_environment_text(monkeypatch) -> None:
    monkeypatch.setenv("DELETE_AFTER_DAYS", "45")

    assert RetentionConfig.from_settings(Settings()).delete_after_days == 45


def test_unparseable_retention_env_fails_only_when_pruning(monkeypatch) -> None:
    monkeypatch.setenv("DELETE_AFTER_DAYS", "thirty")

    loaded = Settings()

    assert loaded.delete_after_days == "thirty"
    with pytest.raises(InvalidConfig):
        RetentionConfig.from_settings(loaded)
