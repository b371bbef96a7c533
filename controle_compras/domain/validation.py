from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from controle_compras.domain.contracts import TEXT_FIELDS, PurchaseRequestStatus


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_purchase_request(data: Dict[str, Any], *, is_update: bool = False) -> List[str]:
    """Collect every violation for a create (or partial update) payload.

    Each field contributes at most one message; fields are checked in
    declaration order and the status check comes last.
    """
    errors: List[str] = []

    for field in TEXT_FIELDS:
        if is_update and field.name not in data:
            continue
        value = data.get(field.name)
        if _is_blank(value):
            if is_update:
                errors.append(f"{field.label} não pode estar vazio")
            else:
                errors.append(f"O campo '{field.name}' é obrigatório")
            continue
        if not isinstance(value, str):
            errors.append(f"O campo '{field.name}' deve ser um texto")
            continue
        if field.max_length is not None and len(value.strip()) > field.max_length:
            errors.append(f"{field.label} deve ter no máximo {field.max_length} caracteres")

    if "data_solicitacao" in data and not is_update:
        if data.get("data_solicitacao") not in (None, "") and parse_timestamp(data.get("data_solicitacao")) is None:
            errors.append("Data da solicitação inválida")

    if "status" in data and data.get("status") not in (None, ""):
        if not PurchaseRequestStatus.is_valid(data.get("status")):
            errors.append("Status inválido")
    elif is_update and "status" in data:
        errors.append("Status inválido")

    return errors


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
