import os
from urllib.parse import quote_plus


DEFAULT_SECRET_KEY = "dev-secret-controle-compras"


def _bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _database_url_from_parts() -> str | None:
    host = (os.environ.get("DB_HOST") or "").strip()
    if not host:
        return None
    port = (os.environ.get("DB_PORT") or "5432").strip()
    name = (os.environ.get("DB_NAME") or "postgres").strip()
    user = quote_plus(os.environ.get("DB_USER") or "postgres")
    password = quote_plus(os.environ.get("DB_PASSWORD") or "")
    sslmode = (os.environ.get("DB_SSLMODE") or "require").strip()
    credentials = f"{user}:{password}" if password else user
    return f"postgresql://{credentials}@{host}:{port}/{name}?sslmode={sslmode}"


def current_env() -> str:
    return (os.environ.get("FLASK_ENV", "development") or "development").strip().lower()


class Config:
    BASE_DIR = os.path.dirname(os.path.dirname(__file__))
    ENV = current_env()
    DATABASE_URL = os.environ.get("DATABASE_URL") or _database_url_from_parts()
    DATABASE_DIR = None if DATABASE_URL else os.path.join(BASE_DIR, "database")
    DB_PATH = DATABASE_URL or os.path.join(DATABASE_DIR, "controle_compras.db")
    DB_AUTO_INIT = _bool_env("DB_AUTO_INIT", False)

    DB_POOL_MIN = _int_env("DB_POOL_MIN", 1)
    DB_POOL_MAX = _int_env("DB_POOL_MAX", 20)
    DB_POOL_ACQUIRE_TIMEOUT_SECONDS = _int_env("DB_POOL_ACQUIRE_TIMEOUT_SECONDS", 10)
    DB_IDLE_TIMEOUT_SECONDS = _int_env("DB_IDLE_TIMEOUT_SECONDS", 30)
    DB_CONNECT_TIMEOUT_SECONDS = _int_env("DB_CONNECT_TIMEOUT_SECONDS", 2)

    SECRET_KEY = os.environ.get("SECRET_KEY") or os.environ.get("CSRF_SECRET") or DEFAULT_SECRET_KEY
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _bool_env("SESSION_COOKIE_SECURE", ENV == "production")
    PERMANENT_SESSION_LIFETIME = _int_env("SESSION_TTL_SECONDS", 24 * 60 * 60)
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL") or ("DEBUG" if ENV == "development" else "INFO")

    CSRF_ENABLED = _bool_env("CSRF_ENABLED", True)
    SECURITY_HEADERS_ENABLED = _bool_env("SECURITY_HEADERS_ENABLED", True)
    RATE_LIMIT_ENABLED = _bool_env("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_WINDOW_SECONDS = _int_env("RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
    RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 100)
    RATE_LIMIT_API_MAX_REQUESTS = _int_env("RATE_LIMIT_API_MAX_REQUESTS", 50)
    RATE_LIMIT_STRICT_MAX_REQUESTS = _int_env("RATE_LIMIT_STRICT_MAX_REQUESTS", 20)

    APP_NAME = os.environ.get("APP_NAME", "Sistema de Controle de Compras")
    APP_VERSION = os.environ.get("APP_VERSION", "2.0.0")


def validate_config(app) -> None:
    env = str(app.config.get("ENV") or current_env()).lower()
    if env != "production":
        return
    if not str(app.config.get("DB_PATH") or "").lower().startswith("postgres"):
        raise RuntimeError("DATABASE_URL nao definida para ambiente de producao.")
    if app.config.get("SECRET_KEY") == DEFAULT_SECRET_KEY:
        raise RuntimeError("SECRET_KEY insegura para producao.")
