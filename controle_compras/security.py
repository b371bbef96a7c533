from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import Any, Dict, Tuple

from flask import current_app, request, session

from controle_compras.errors import CsrfError, RateLimitError
from controle_compras.ui_strings import error_message


logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = "_csrf_token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
_SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}


def client_ip() -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return str(request.remote_addr or "").strip() or "unknown"


def csrf_token() -> str:
    token = str(session.get(CSRF_SESSION_KEY) or "").strip()
    if token:
        return token
    token = secrets.token_urlsafe(32)
    session[CSRF_SESSION_KEY] = token
    return token


def validate_csrf_token(token: str | None) -> bool:
    if not bool(current_app.config.get("CSRF_ENABLED", True)):
        return True
    expected = str(session.get(CSRF_SESSION_KEY) or "").strip()
    provided = str(token or "").strip()
    if not expected or not provided:
        return False
    return secrets.compare_digest(expected, provided)


def _submitted_csrf_token() -> str | None:
    header_token = request.headers.get(CSRF_HEADER)
    if header_token:
        return header_token
    body = request.get_json(silent=True)
    if isinstance(body, dict) and body.get(CSRF_FORM_FIELD):
        return str(body.get(CSRF_FORM_FIELD))
    return request.form.get(CSRF_FORM_FIELD)


def enforce_api_csrf() -> None:
    if request.method in _SAFE_METHODS:
        return
    if not request.path.startswith("/api/"):
        return
    if not bool(current_app.config.get("CSRF_ENABLED", True)):
        return
    if validate_csrf_token(_submitted_csrf_token()):
        return
    logger.warning("csrf_rejected", extra={"ip": client_ip()})
    raise CsrfError()


class SimpleRateLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, int]] = {}

    def allow(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
        now = time.monotonic()
        with self._lock:
            start, count = self._entries.get(key, (now, 0))
            if now - start >= window_seconds:
                start = now
                count = 0
            count += 1
            self._entries[key] = (start, count)
            if len(self._entries) > 10_000:
                cutoff = now - (window_seconds * 2)
                self._entries = {
                    cached_key: value
                    for cached_key, value in self._entries.items()
                    if value[0] >= cutoff
                }
            retry_after = max(0, int(window_seconds - (now - start)))
            return count <= limit, retry_after

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


_RATE_LIMITER = SimpleRateLimiter()


def _rate_limit_tiers() -> list[tuple[str, str]]:
    tiers = [("general", "RATE_LIMIT_MAX_REQUESTS")]
    if request.path.startswith("/api/"):
        tiers.append(("api", "RATE_LIMIT_API_MAX_REQUESTS"))
        if request.method not in _SAFE_METHODS:
            tiers.append(("strict", "RATE_LIMIT_STRICT_MAX_REQUESTS"))
    return tiers


def enforce_rate_limit():
    if not bool(current_app.config.get("RATE_LIMIT_ENABLED", True)):
        return None
    if request.method == "OPTIONS":
        return None
    if request.path.startswith("/static/"):
        return None

    window_seconds = max(1, int(current_app.config.get("RATE_LIMIT_WINDOW_SECONDS", 900) or 900))
    ip = client_ip()
    for tier, config_key in _rate_limit_tiers():
        max_requests = max(1, int(current_app.config.get(config_key, 100) or 100))
        allowed, retry_after = _RATE_LIMITER.allow(
            f"{tier}|{ip}",
            limit=max_requests,
            window_seconds=window_seconds,
        )
        if allowed:
            continue

        logger.warning("rate_limit_exceeded", extra={"ip": ip, "tier": tier})
        if request.path.startswith("/api/"):
            raise RateLimitError(payload={"retry_after": retry_after})
        return (
            error_message("rate_limit_exceeded"),
            429,
            {"Retry-After": str(retry_after)},
        )
    return None


def apply_security_headers(response):
    if not bool(current_app.config.get("SECURITY_HEADERS_ENABLED", True)):
        return response
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault(
        "Permissions-Policy",
        "camera=(), geolocation=(), microphone=()",
    )
    response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
    response.headers.setdefault(
        "Content-Security-Policy",
        "; ".join(
            [
                "default-src 'self'",
                "img-src 'self' data:",
                "style-src 'self'",
                "script-src 'self'",
                "font-src 'self' data:",
                "connect-src 'self'",
                "frame-ancestors 'none'",
                "base-uri 'self'",
                "form-action 'self'",
            ]
        ),
    )
    if request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


def sanitize_input(value: Any) -> Any:
    """Trim strings and drop angle brackets, recursing into dicts and lists."""
    if isinstance(value, str):
        return value.strip().replace("<", "").replace(">", "")
    if isinstance(value, list):
        return [sanitize_input(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize_input(item) for key, item in value.items()}
    return value


def normalize_string(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.strip().upper()


def reset_rate_limiter_for_tests() -> None:
    _RATE_LIMITER.reset()
