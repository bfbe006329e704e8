class WebhookClientError(RuntimeError):
    error_code: str = "webhook_client_error"


class InvalidConfig(WebhookClientError, ValueError):
    error_code = "invalid_config"

    @classmethod
    def invalid_prunable(cls, value: object) -> "InvalidConfig":
        return cls(f"`delete_after_days` must be a non-negative integer, got {value!r}")

    @classmethod
    def invalid_store_headers(cls, name: str, value: object) -> "InvalidConfig":
        return cls(f"`store_headers` of webhook config `{name}` must be '*' or a list of header names, got {value!r}")


class WebhookConfigNotFound(WebhookClientError, LookupError):
    error_code = "webhook_config_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Could not find any webhook config named `{name}`")
        self.name = name


class StorageWriteError(WebhookClientError):
    error_code = "webhook_storage_error"


class ImmutableWebhookCallError(WebhookClientError):
    error_code = "webhook_call_immutable"

    def __init__(self, field: str) -> None:
        super().__init__(f"`{field}` of a stored webhook call cannot be changed")
        self.field = field


class InvalidWebhookPayload(WebhookClientError, ValueError):
    error_code = "invalid_webhook_payload"
