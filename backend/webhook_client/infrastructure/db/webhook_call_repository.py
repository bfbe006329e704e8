from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session

from webhook_client.domain.models.webhook_call import WebhookCall


class WebhookCallRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, webhook_call: WebhookCall) -> WebhookCall:
        self.db.add(webhook_call)
        self.db.flush()
        return webhook_call

    def get(self, call_id: UUID) -> WebhookCall | None:
        return self.db.get(WebhookCall, call_id)

    def save(self, webhook_call: WebhookCall) -> WebhookCall:
        self.db.add(webhook_call)
        self.db.flush()
        return webhook_call

    @staticmethod
    def older_than(threshold: datetime) -> Select:
        return select(WebhookCall).where(WebhookCall.created_at < threshold).order_by(WebhookCall.created_at.asc())

    def delete_older_than(self, threshold: datetime) -> int:
        result = self.db.execute(
            delete(WebhookCall)
            .where(WebhookCall.created_at < threshold)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
