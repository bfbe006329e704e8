from webhook_client.application.services.webhook_processing_service import get_webhook_config_repository
from webhook_client.domain.webhook_config import WebhookConfigRepository


def get_webhook_configs() -> WebhookConfigRepository:
    return get_webhook_config_repository()
