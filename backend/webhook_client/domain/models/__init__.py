from webhook_client.domain.models.webhook_call import WebhookCall

__all__ = [
    "WebhookCall",
]
