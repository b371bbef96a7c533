import os

from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound

from controle_compras.config import Config, validate_config
from controle_compras.db import close_db, get_db
from controle_compras.db_cli import register_db_cli
from controle_compras.observability import (
    REQUEST_ID_HEADER,
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    observe_response,
)
from controle_compras.security import (
    apply_security_headers,
    client_ip,
    csrf_token,
    enforce_api_csrf,
    enforce_rate_limit,
)
from controle_compras.ui_strings import error_message, status_css_class, template_bundle


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)
    validate_config(app)

    _ensure_database_dir(app)
    _register_error_handlers(app)
    _register_security(app)
    _register_template_context(app)
    _register_blueprints(app)
    register_db_cli(app)
    app.teardown_appcontext(close_db)
    _maybe_init_schema(app)
    return app


def _ensure_database_dir(app: Flask) -> None:
    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)


def _maybe_init_schema(app: Flask) -> None:
    from controle_compras.errors import AppError
    from controle_compras.infrastructure.repositories import PurchaseRequestRepository

    auto_init = bool(app.config.get("DB_AUTO_INIT", False))
    if app.testing:
        auto_init = True
    if not auto_init:
        return

    env = str(app.config.get("ENV") or "development").strip().lower()
    if not app.testing and env != "development":
        app.logger.warning("DB_AUTO_INIT ignorado fora de development.")
        return

    with app.app_context():
        try:
            PurchaseRequestRepository().ensure_schema(get_db())
        except AppError as exc:
            # A aplicacao sobe mesmo sem banco; /api/health reporta a falha.
            app.logger.error("schema_init_failed", extra={"error_code": exc.code, "details": exc.details})


def _register_blueprints(app: Flask) -> None:
    from controle_compras.routes.api_routes import api_bp
    from controle_compras.routes.home_routes import home_bp

    app.register_blueprint(home_bp)
    app.register_blueprint(api_bp)


def _register_error_handlers(app: Flask) -> None:
    from controle_compras.errors import AppError, SystemError

    @app.before_request
    def _ensure_request_id() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _append_request_id(response):
        response.headers[REQUEST_ID_HEADER] = ensure_request_id()
        response = observe_response(response)
        return apply_security_headers(response)

    def _log_error(error: AppError, request_id: str) -> None:
        log_method = app.logger.error if error.critical else app.logger.warning
        log_method(
            "application_error",
            extra={
                "request_id": request_id,
                "error_code": error.code,
                "http_status": error.http_status,
                "message_key": error.message_key,
                "details": error.details,
                "request_path": request.path,
                "http_method": request.method,
                "client_ip": client_ip(),
            },
            exc_info=error.critical,
        )

    def _render_app_error(error: AppError):
        request_id = ensure_request_id()
        _log_error(error, request_id)
        return jsonify(error.to_response_payload(request_id)), error.http_status

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        return _render_app_error(exc)

    @app.errorhandler(NotFound)
    def _handle_not_found(exc: NotFound):
        if request.path.startswith("/api/"):
            return _render_app_error(
                AppError(
                    code="not_found",
                    message_key="api_endpoint_not_found",
                    http_status=404,
                    critical=False,
                    payload={"path": request.path},
                )
            )
        return render_template("404.html", message=error_message("page_not_found")), 404

    @app.errorhandler(MethodNotAllowed)
    def _handle_method_not_allowed(exc: MethodNotAllowed):
        if not request.path.startswith("/api/"):
            return exc
        return _render_app_error(
            AppError(
                code="method_not_allowed",
                message_key="method_not_allowed",
                http_status=405,
                critical=False,
            )
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc

        request_id = ensure_request_id()
        mapped = SystemError(details=str(exc))
        app.logger.exception(
            "unexpected_exception",
            extra={
                "request_id": request_id,
                "error_code": mapped.code,
                "request_path": request.path,
                "http_method": request.method,
                "client_ip": client_ip(),
            },
        )
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_security(app: Flask) -> None:
    @app.before_request
    def _rate_limit_guard():
        return enforce_rate_limit()

    @app.before_request
    def _csrf_guard():
        enforce_api_csrf()


def _register_template_context(app: Flask) -> None:
    @app.context_processor
    def inject_ui_context():
        return {
            "app_name": app.config.get("APP_NAME"),
            "app_version": app.config.get("APP_VERSION"),
            "csrf_token": csrf_token,
            "status_css_class": status_css_class,
            **template_bundle(),
        }
