from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from webhook_client.domain.webhook_config import STORE_ALL_HEADERS

HeaderValue = TypeVar("HeaderValue")


def group_headers(raw_headers: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> dict[str, list[str]]:
    """Group a header collection into ``name -> [values]``, keeping first-seen order."""
    pairs = raw_headers.items() if isinstance(raw_headers, Mapping) else raw_headers
    grouped: dict[str, list[str]] = {}
    for name, value in pairs:
        values = value if isinstance(value, (list, tuple)) else [value]
        grouped.setdefault(name, []).extend(str(item) for item in values)
    return grouped


def select_headers(
    policy: str | Iterable[str],
    all_headers: Mapping[str, HeaderValue],
) -> dict[str, HeaderValue]:
    if policy == STORE_ALL_HEADERS:
        return dict(all_headers)

    names_to_store = {header_name.lower() for header_name in policy}
    return {
        header_name: header_value
        for header_name, header_value in all_headers.items()
        if header_name.lower() in names_to_store
    }
