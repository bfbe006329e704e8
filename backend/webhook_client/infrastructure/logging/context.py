from contextvars import ContextVar

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
_webhook_name_ctx: ContextVar[str | None] = ContextVar("webhook_name", default=None)


def set_request_id(request_id: str | None) -> object:
    return _request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


def reset_request_id(token: object) -> None:
    _request_id_ctx.reset(token)


def set_webhook_name(name: str | None) -> object:
    return _webhook_name_ctx.set(name)


def get_webhook_name() -> str | None:
    return _webhook_name_ctx.get()


def reset_webhook_name(token: object) -> None:
    _webhook_name_ctx.reset(token)
