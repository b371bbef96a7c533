from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from controle_compras.application.purchase_request_service import PurchaseRequestService
from controle_compras.db import get_db
from controle_compras.domain.contracts import MAX_RECORD_ID, ServiceOutput
from controle_compras.errors import ValidationError, utc_timestamp
from controle_compras.ui_strings import error_message, success_message


api_bp = Blueprint("api", __name__, url_prefix="/api")

_SERVICE = PurchaseRequestService()


def _respond(result: ServiceOutput):
    body = {
        "success": True,
        "message": success_message(result.message_key),
        "timestamp": utc_timestamp(),
    }
    if result.data is not None:
        body["data"] = result.data
    return jsonify(body), result.status_code


def _parse_id(raw_id: str) -> int:
    text = str(raw_id or "").strip()
    digits = text.lstrip("0")
    if not (text.isascii() and text.isdigit()) or not digits:
        raise ValidationError(
            [error_message("id_invalid")],
            code="id_invalid",
            message_key="id_invalid",
        )
    # Wider than the key column: a well-formed id that cannot exist.
    if len(digits) > len(str(MAX_RECORD_ID)):
        return MAX_RECORD_ID + 1
    return int(digits)


def _json_body():
    return request.get_json(silent=True)


@api_bp.route("/health", methods=["GET"])
def health():
    version = str(current_app.config.get("APP_VERSION") or "")
    return _respond(_SERVICE.health(get_db, version=version))


@api_bp.route("/solicitacoes/stats", methods=["GET"])
def purchase_request_stats():
    return _respond(_SERVICE.stats(get_db()))


@api_bp.route("/solicitacoes", methods=["GET"])
def list_purchase_requests():
    return _respond(_SERVICE.list_page(get_db(), args=request.args))


@api_bp.route("/solicitacoes", methods=["POST"])
def create_purchase_request():
    return _respond(_SERVICE.create(get_db(), _json_body()))


@api_bp.route("/solicitacoes/<raw_id>", methods=["GET"])
def get_purchase_request(raw_id: str):
    return _respond(_SERVICE.get(get_db(), _parse_id(raw_id)))


@api_bp.route("/solicitacoes/<raw_id>", methods=["PUT"])
def update_purchase_request(raw_id: str):
    purchase_request_id = _parse_id(raw_id)
    return _respond(_SERVICE.update(get_db(), purchase_request_id, _json_body()))


@api_bp.route("/solicitacoes/<raw_id>/status", methods=["PATCH"])
def update_purchase_request_status(raw_id: str):
    purchase_request_id = _parse_id(raw_id)
    return _respond(_SERVICE.update_status(get_db(), purchase_request_id, _json_body()))


@api_bp.route("/solicitacoes/<raw_id>", methods=["DELETE"])
def delete_purchase_request(raw_id: str):
    return _respond(_SERVICE.delete(get_db(), _parse_id(raw_id)))


@api_bp.route("/admin/create-table", methods=["POST"])
def create_table():
    return _respond(_SERVICE.ensure_schema(get_db()))
