from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class PurchaseRequestStatus(str, Enum):
    PENDING = "Pendente"
    IN_PROGRESS = "Em Andamento"
    PURCHASED = "Comprado"
    CANCELLED = "Cancelado"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        return isinstance(value, str) and value in cls.values()


DEFAULT_STATUS = PurchaseRequestStatus.PENDING


@dataclass(frozen=True)
class TextField:
    name: str
    label: str
    max_length: int | None


TEXT_FIELDS: Tuple[TextField, ...] = (
    TextField("nome_pessoa", "Nome da pessoa", 255),
    TextField("setor", "Setor", 100),
    TextField("centro_custo", "Centro de custo", 50),
    TextField("equipamento", "Equipamento", None),
)

TEXT_FIELD_NAMES: Tuple[str, ...] = tuple(field.name for field in TEXT_FIELDS)
MUTABLE_FIELDS: Tuple[str, ...] = (*TEXT_FIELD_NAMES, "status")


@dataclass(frozen=True)
class ListFilters:
    status: str | None = None
    setor: str | None = None
    search: str | None = None

    @classmethod
    def from_mapping(cls, values: Dict[str, Any] | None) -> "ListFilters":
        values = values or {}

        def _clean(key: str) -> str | None:
            raw = values.get(key)
            if raw is None:
                return None
            text = str(raw).strip()
            return text or None

        return cls(
            status=_clean("status"),
            setor=_clean("setor") or _clean("department"),
            search=_clean("search"),
        )


SORTABLE_COLUMNS = (
    "id",
    "nome_pessoa",
    "setor",
    "centro_custo",
    "equipamento",
    "data_solicitacao",
    "status",
    "created_at",
    "updated_at",
)
SORT_DIRECTIONS = ("ASC", "DESC")


@dataclass(frozen=True)
class SortOrder:
    column: str
    direction: str

    def __post_init__(self) -> None:
        if self.column not in SORTABLE_COLUMNS:
            raise ValueError(f"coluna de ordenacao nao permitida: {self.column!r}")
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"direcao de ordenacao nao permitida: {self.direction!r}")

    @classmethod
    def parse(cls, raw: str | None) -> "SortOrder":
        """Parse ``"<column>"`` or ``"<column> ASC|DESC"`` against the allow-list.

        Raises ``ValueError`` for anything outside it; an empty value yields
        the default ordering.
        """
        text = " ".join(str(raw or "").split())
        if not text:
            return DEFAULT_SORT
        parts = text.split(" ")
        if len(parts) > 2:
            raise ValueError(f"ordenacao invalida: {text!r}")
        column = parts[0].lower()
        direction = parts[1].upper() if len(parts) == 2 else "ASC"
        return cls(column=column, direction=direction)

    def to_sql(self) -> str:
        clause = f"{self.column} {self.direction}"
        if self.column != "id":
            clause += f", id {self.direction}"
        return clause


DEFAULT_SORT = SortOrder(column="data_solicitacao", direction="DESC")


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Upper bound of the SERIAL primary key (int4).
MAX_RECORD_ID = 2_147_483_647


def _parse_positive_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def resolve_page(value: Any) -> int:
    return max(1, _parse_positive_int(value) or 1)


def resolve_page_size(value: Any) -> int:
    return min(MAX_PAGE_SIZE, max(1, _parse_positive_int(value) or DEFAULT_PAGE_SIZE))


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_previous: bool
    has_next: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total_items: int) -> "Pagination":
        total_pages = math.ceil(total_items / limit) if total_items > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total_items,
            items_per_page=limit,
            has_previous=page > 1,
            has_next=page < total_pages,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def percent_of(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(math.floor(count * 100 / total + 0.5))


@dataclass(frozen=True)
class ServiceOutput:
    data: Any = None
    status_code: int = 200
    message_key: str = "default"
