from __future__ import annotations

import dataclasses
from typing import Any, Dict, Mapping

from controle_compras.domain.contracts import (
    MAX_RECORD_ID,
    TEXT_FIELD_NAMES,
    ListFilters,
    Pagination,
    PurchaseRequestStatus,
    ServiceOutput,
    SortOrder,
    page_offset,
    percent_of,
    resolve_page,
    resolve_page_size,
)
from controle_compras.errors import NotFoundError, PersistenceError, StoreUnavailableError, ValidationError, utc_timestamp
from controle_compras.infrastructure.repositories import PurchaseRequestRepository
from controle_compras.security import CSRF_FORM_FIELD, normalize_string, sanitize_input
from controle_compras.ui_strings import error_message


_FILTER_KEYS = ("status", "setor", "department", "search")


class PurchaseRequestService:
    def __init__(self, repository: PurchaseRequestRepository | None = None) -> None:
        self.repository = repository or PurchaseRequestRepository()

    @staticmethod
    def _prepare_fields(payload: Any) -> Dict[str, Any]:
        """Sanitize a request body and upper-case the free-text fields."""
        if not isinstance(payload, dict):
            return {}
        data = sanitize_input(payload)
        data.pop(CSRF_FORM_FIELD, None)
        for name in TEXT_FIELD_NAMES:
            if name in data:
                data[name] = normalize_string(data[name])
        return data

    @staticmethod
    def _filters(args: Mapping[str, Any]) -> ListFilters:
        raw = sanitize_input({key: args.get(key) for key in _FILTER_KEYS})
        filters = ListFilters.from_mapping(raw)
        if filters.setor:
            filters = dataclasses.replace(filters, setor=normalize_string(filters.setor))
        return filters

    @staticmethod
    def _sort_order(raw: Any) -> SortOrder:
        try:
            return SortOrder.parse(raw)
        except ValueError as exc:
            raise ValidationError(
                [error_message("order_by_invalid")],
                code="order_by_invalid",
                message_key="order_by_invalid",
                details=str(exc),
            ) from exc

    def _require_existing(self, db, purchase_request_id: int) -> None:
        if purchase_request_id > MAX_RECORD_ID or not self.repository.exists(db, purchase_request_id):
            raise NotFoundError(payload={"id": purchase_request_id})

    def list_page(self, db, *, args: Mapping[str, Any]) -> ServiceOutput:
        filters = self._filters(args)
        order = self._sort_order(args.get("orderBy"))
        page = resolve_page(args.get("page"))
        limit = resolve_page_size(args.get("limit"))

        total_items = self.repository.count(db, filters)
        offset = page_offset(page, limit)
        # Pages past the end never reach the store; the offset may not fit an SQL integer.
        items = self.repository.list(db, filters, order, limit, offset) if offset < total_items else []
        pagination = Pagination.build(page=page, limit=limit, total_items=total_items)
        return ServiceOutput(data={"items": items, "pagination": pagination.to_dict()})

    def stats(self, db) -> ServiceOutput:
        breakdown = self.repository.status_breakdown(db)
        total = sum(row["quantidade"] for row in breakdown)
        stats = [
            {**row, "percentual": percent_of(row["quantidade"], total)}
            for row in breakdown
        ]
        return ServiceOutput(data={"stats": stats, "total": total})

    def get(self, db, purchase_request_id: int) -> ServiceOutput:
        record = None
        if purchase_request_id <= MAX_RECORD_ID:
            record = self.repository.get_by_id(db, purchase_request_id)
        if record is None:
            raise NotFoundError(payload={"id": purchase_request_id})
        return ServiceOutput(data=record)

    def create(self, db, payload: Any) -> ServiceOutput:
        fields = self._prepare_fields(payload)
        new_id = self.repository.create(db, fields)
        return ServiceOutput(data={"id": new_id}, status_code=201, message_key="request_created")

    def update(self, db, purchase_request_id: int, payload: Any) -> ServiceOutput:
        self._require_existing(db, purchase_request_id)
        fields = self._prepare_fields(payload)
        self.repository.update(db, purchase_request_id, fields)
        return ServiceOutput(message_key="request_updated")

    def update_status(self, db, purchase_request_id: int, payload: Any) -> ServiceOutput:
        status = sanitize_input(payload.get("status")) if isinstance(payload, dict) else None
        if status is None or status == "":
            raise ValidationError(
                [error_message("status_required")],
                code="status_required",
                message_key="status_required",
            )
        if not PurchaseRequestStatus.is_valid(status):
            raise ValidationError(
                [error_message("status_invalid")],
                code="status_invalid",
                message_key="status_invalid",
                payload={"valid_status": PurchaseRequestStatus.values()},
            )
        self._require_existing(db, purchase_request_id)
        self.repository.update_status(db, purchase_request_id, status)
        return ServiceOutput(
            data={"id": purchase_request_id, "status": status},
            message_key="status_updated",
        )

    def delete(self, db, purchase_request_id: int) -> ServiceOutput:
        self._require_existing(db, purchase_request_id)
        self.repository.delete(db, purchase_request_id)
        return ServiceOutput(message_key="request_deleted")

    def ensure_schema(self, db) -> ServiceOutput:
        self.repository.ensure_schema(db)
        return ServiceOutput(message_key="schema_ready")

    def health(self, get_db_fn, *, version: str) -> ServiceOutput:
        try:
            self.repository.count(get_db_fn())
        except PersistenceError as exc:
            raise StoreUnavailableError(
                message_key="health_store_unavailable",
                details=exc.details,
            ) from exc
        return ServiceOutput(
            data={
                "status": "healthy",
                "database": "connected",
                "timestamp": utc_timestamp(),
                "version": version,
            }
        )
