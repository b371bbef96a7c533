from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Dict

from flask import g, has_request_context, request

from controle_compras.security import client_ip


logger = logging.getLogger("controle_compras.http")

REQUEST_ID_HEADER = "X-Request-Id"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"

# LogRecord attributes that never become JSON fields.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _request_fields() -> Dict[str, object]:
    fields: Dict[str, object] = {
        "request_id": current_request_id(),
        "method": request.method,
        "path": request.path,
        "ip": client_ip(),
    }
    if request.url_rule is not None:
        fields["route"] = request.url_rule.rule
    return fields


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; request fields are attached while serving a request."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if has_request_context():
            payload.update(_request_fields())
        else:
            payload["request_id"] = str(getattr(record, "request_id", "") or "").strip() or "n/a"

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key.startswith("_") or key in payload or callable(value):
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str, separators=(",", ":"))


def configure_json_logging(app) -> None:
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).strip().upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    if not bool(app.config.get("LOG_JSON", True)):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    root_logger.handlers = [handler]
    app.logger.handlers = []
    app.logger.propagate = True


def ensure_request_id() -> str:
    request_id = current_request_id(default="")
    if request_id:
        return request_id
    incoming = str(request.headers.get(REQUEST_ID_HEADER) or "").strip()
    g.request_id = incoming[:128] or str(uuid.uuid4())
    return g.request_id


def current_request_id(default: str = "n/a") -> str:
    if not has_request_context():
        return default
    return str(getattr(g, "request_id", "") or "").strip() or default


def mark_request_start() -> None:
    g._request_started_at = time.perf_counter()


def observe_response(response):
    started = getattr(g, "_request_started_at", None)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started else 0.0
    response.headers[RESPONSE_TIME_HEADER] = f"{elapsed_ms:.2f}"

    if request.path.startswith("/static/"):
        return response
    log_method = logger.warning if response.status_code >= 400 else logger.debug
    log_method(
        "request_completed",
        extra={
            "status": int(response.status_code),
            "duration_ms": round(elapsed_ms, 2),
            "user_agent": request.headers.get("User-Agent"),
        },
    )
    return response
