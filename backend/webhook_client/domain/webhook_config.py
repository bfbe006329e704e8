from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from webhook_client.core.errors import InvalidConfig, WebhookConfigNotFound

STORE_ALL_HEADERS = "*"


@dataclass(frozen=True)
class WebhookConfig:
    name: str
    store_headers: str | tuple[str, ...] = ()
    process_webhook_job: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidConfig("Webhook config `name` must be a non-empty string")
        if self.store_headers == STORE_ALL_HEADERS:
            return
        if isinstance(self.store_headers, str) or not isinstance(self.store_headers, Iterable):
            raise InvalidConfig.invalid_store_headers(self.name, self.store_headers)
        names = tuple(self.store_headers)
        if not all(isinstance(header_name, str) for header_name in names):
            raise InvalidConfig.invalid_store_headers(self.name, self.store_headers)
        object.__setattr__(self, "store_headers", names)

    @property
    def stores_all_headers(self) -> bool:
        return self.store_headers == STORE_ALL_HEADERS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WebhookConfig:
        return cls(
            name=data.get("name", ""),
            store_headers=data.get("store_headers", ()),
            process_webhook_job=data.get("process_webhook_job"),
        )


class WebhookConfigRepository:
    def __init__(self, configs: Iterable[WebhookConfig] = ()) -> None:
        self._configs: dict[str, WebhookConfig] = {}
        for config in configs:
            self.add(config)

    def add(self, config: WebhookConfig) -> None:
        self._configs[config.name] = config

    def get(self, name: str) -> WebhookConfig:
        config = self._configs.get(name)
        if config is None:
            raise WebhookConfigNotFound(name)
        return config

    def all(self) -> list[WebhookConfig]:
        return list(self._configs.values())

    @classmethod
    def from_settings(cls, raw_configs: Iterable[Mapping[str, Any]]) -> WebhookConfigRepository:
        return cls(WebhookConfig.from_dict(item) for item in raw_configs)
