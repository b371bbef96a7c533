from __future__ import annotations

import logging
from typing import Any, Dict

from controle_compras.domain.contracts import (
    DEFAULT_SORT,
    DEFAULT_STATUS,
    MUTABLE_FIELDS,
    TEXT_FIELD_NAMES,
    ListFilters,
    PurchaseRequestStatus,
    SortOrder,
)
from controle_compras.domain.validation import parse_timestamp, validate_purchase_request
from controle_compras.errors import NotFoundError, PersistenceError, ValidationError
from controle_compras.infrastructure.repositories.base import BaseRepository, escape_like, utc_now_iso
from controle_compras.ui_strings import error_message


logger = logging.getLogger(__name__)

TABLE_NAME = "solicitacoes"

SELECT_COLUMNS = (
    "id, nome_pessoa, setor, centro_custo, equipamento, "
    "data_solicitacao, status, created_at, updated_at"
)

_STATUS_CHECK = ", ".join(f"'{value}'" for value in PurchaseRequestStatus.values())

_INDEXES = (
    f"CREATE INDEX IF NOT EXISTS idx_solicitacoes_status ON {TABLE_NAME}(status)",
    f"CREATE INDEX IF NOT EXISTS idx_solicitacoes_setor ON {TABLE_NAME}(setor)",
    f"CREATE INDEX IF NOT EXISTS idx_solicitacoes_data ON {TABLE_NAME}(data_solicitacao)",
)

_POSTGRES_TABLE = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id SERIAL PRIMARY KEY,
    nome_pessoa VARCHAR(255) NOT NULL,
    setor VARCHAR(100) NOT NULL,
    centro_custo VARCHAR(50) NOT NULL,
    equipamento TEXT NOT NULL,
    data_solicitacao TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
    status VARCHAR(50) NOT NULL DEFAULT '{DEFAULT_STATUS.value}' CHECK (status IN ({_STATUS_CHECK})),
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

_SQLITE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    nome_pessoa TEXT NOT NULL CHECK (length(nome_pessoa) <= 255),
    setor TEXT NOT NULL CHECK (length(setor) <= 100),
    centro_custo TEXT NOT NULL CHECK (length(centro_custo) <= 50),
    equipamento TEXT NOT NULL,
    data_solicitacao TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT '{DEFAULT_STATUS.value}' CHECK (status IN ({_STATUS_CHECK})),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


def _clean_text(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class PurchaseRequestRepository(BaseRepository):
    """Every SQL statement touching ``solicitacoes`` lives here."""

    def ensure_schema(self, db) -> None:
        table_sql = _POSTGRES_TABLE if db.backend == "postgres" else _SQLITE_TABLE
        db.execute(table_sql)
        for statement in _INDEXES:
            db.execute(statement)
        logger.info("schema_ensured", extra={"table": TABLE_NAME, "backend": db.backend})

    def create(self, db, fields: Dict[str, Any]) -> int:
        errors = validate_purchase_request(fields)
        if errors:
            raise ValidationError(errors)

        now = utc_now_iso()
        requested_at = parse_timestamp(fields.get("data_solicitacao"))
        status = fields.get("status") or DEFAULT_STATUS.value
        row = db.execute(
            f"""
            INSERT INTO {TABLE_NAME} (
                nome_pessoa, setor, centro_custo, equipamento,
                data_solicitacao, status, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (
                *(_clean_text(fields[name]) for name in TEXT_FIELD_NAMES),
                requested_at.isoformat(timespec="microseconds") if requested_at else now,
                status,
                now,
                now,
            ),
        ).fetchone()
        if row is None:
            raise PersistenceError(details="insert returned no row")
        return int(self.scalar(row, "id"))

    def _where(self, filters: ListFilters | None) -> tuple[str, list]:
        filters = filters or ListFilters()
        clauses: list[str] = []
        params: list[Any] = []
        if filters.status:
            clauses.append("status = ?")
            params.append(filters.status)
        if filters.setor:
            clauses.append("setor = ?")
            params.append(filters.setor)
        if filters.search:
            pattern = f"%{escape_like(filters.search.upper())}%"
            clauses.append(
                "(UPPER(nome_pessoa) LIKE ? ESCAPE '\\' OR UPPER(equipamento) LIKE ? ESCAPE '\\')"
            )
            params.extend((pattern, pattern))
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def list(
        self,
        db,
        filters: ListFilters | None = None,
        order: SortOrder = DEFAULT_SORT,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        where, params = self._where(filters)
        sql = f"SELECT {SELECT_COLUMNS} FROM {TABLE_NAME}{where} ORDER BY {order.to_sql()}"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend((int(limit), max(0, int(offset))))
        return self.rows_to_dicts(db.execute(sql, params).fetchall())

    def count(self, db, filters: ListFilters | None = None) -> int:
        where, params = self._where(filters)
        row = db.execute(f"SELECT COUNT(*) AS total FROM {TABLE_NAME}{where}", params).fetchone()
        return int(self.scalar(row, "total", 0))

    def get_by_id(self, db, purchase_request_id: int) -> dict | None:
        row = db.execute(
            f"SELECT {SELECT_COLUMNS} FROM {TABLE_NAME} WHERE id = ? LIMIT 1",
            (purchase_request_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def exists(self, db, purchase_request_id: int) -> bool:
        row = db.execute(
            f"SELECT 1 AS found FROM {TABLE_NAME} WHERE id = ? LIMIT 1",
            (purchase_request_id,),
        ).fetchone()
        return row is not None

    def update(self, db, purchase_request_id: int, fields: Dict[str, Any]) -> None:
        changes = {name: _clean_text(fields[name]) for name in MUTABLE_FIELDS if name in fields}
        if not changes:
            raise ValidationError(
                [error_message("no_fields_to_update")],
                code="no_fields_to_update",
                message_key="no_fields_to_update",
            )
        errors = validate_purchase_request(changes, is_update=True)
        if errors:
            raise ValidationError(errors)

        assignments = ", ".join(f"{name} = ?" for name in changes)
        cursor = db.execute(
            f"UPDATE {TABLE_NAME} SET {assignments}, updated_at = ? WHERE id = ?",
            (*changes.values(), utc_now_iso(), purchase_request_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(payload={"id": purchase_request_id})

    def update_status(self, db, purchase_request_id: int, status: Any) -> None:
        self.update(db, purchase_request_id, {"status": status})

    def delete(self, db, purchase_request_id: int) -> None:
        cursor = db.execute(f"DELETE FROM {TABLE_NAME} WHERE id = ?", (purchase_request_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(payload={"id": purchase_request_id})

    def status_breakdown(self, db) -> list[dict]:
        rows = db.execute(
            f"""
            SELECT status, COUNT(*) AS quantidade
            FROM {TABLE_NAME}
            GROUP BY status
            ORDER BY quantidade DESC, status ASC
            """
        ).fetchall()
        return [{"status": row["status"], "quantidade": int(row["quantidade"])} for row in rows]
