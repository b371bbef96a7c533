from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from controle_compras.ui_strings import error_message


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class AppError(Exception):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = (code or self.default_code).strip()
        self.message_key = (message_key or self.default_message_key).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = bool(self.default_critical if critical is None else critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        fallback = error_message("unexpected_error")
        return error_message(self.message_key, fallback)

    def to_response_payload(self, request_id: str | None = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.user_message(),
            "statusCode": self.http_status,
            "timestamp": utc_timestamp(),
            "code": self.code,
        }
        if request_id:
            payload["request_id"] = request_id
        if self.payload:
            payload.update(self.payload)
        return payload


class ValidationError(AppError):
    """Carries every violation found, in order, under ``errors``."""

    default_code = "validation_error"
    default_message_key = "validation_error"
    default_http_status = 400
    default_critical = False

    def __init__(self, messages: Iterable[str] | str | None = None, **kwargs) -> None:
        if isinstance(messages, str):
            messages = [messages]
        self.messages: List[str] = [str(message) for message in (messages or [])]
        payload = dict(kwargs.pop("payload", None) or {})
        if self.messages:
            payload.setdefault("errors", list(self.messages))
        kwargs.setdefault("details", "; ".join(self.messages) or None)
        super().__init__(payload=payload, **kwargs)


class NotFoundError(AppError):
    default_code = "not_found"
    default_message_key = "purchase_request_not_found"
    default_http_status = 404
    default_critical = False


class DuplicateError(AppError):
    default_code = "duplicate_record"
    default_message_key = "duplicate_record"
    default_http_status = 409
    default_critical = False


class PersistenceError(AppError):
    default_code = "persistence_error"
    default_message_key = "persistence_error"
    default_http_status = 500
    default_critical = True


class StoreUnavailableError(PersistenceError):
    default_code = "store_unavailable"
    default_message_key = "store_unavailable"
    default_http_status = 503
    default_critical = True


class CsrfError(AppError):
    default_code = "csrf_invalid"
    default_message_key = "csrf_invalid"
    default_http_status = 403
    default_critical = False


class RateLimitError(AppError):
    default_code = "rate_limit_exceeded"
    default_message_key = "rate_limit_exceeded"
    default_http_status = 429
    default_critical = False


class SystemError(AppError):
    default_code = "unexpected_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True
