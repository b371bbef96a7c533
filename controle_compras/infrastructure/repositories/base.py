from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def escape_like(value: str) -> str:
    """Escape LIKE meta-characters so the value matches literally with ``ESCAPE '\\'``."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BaseRepository:
    @staticmethod
    def serialize_value(value: Any) -> Any:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc).isoformat()
        return value

    @classmethod
    def row_to_dict(cls, row: Any) -> dict | None:
        if row is None:
            return None
        return {key: cls.serialize_value(value) for key, value in dict(row).items()}

    @classmethod
    def rows_to_dicts(cls, rows: Iterable[Any]) -> list[dict]:
        return [cls.row_to_dict(row) for row in rows]

    @staticmethod
    def scalar(row: Any, key: str, default: Any = None) -> Any:
        if row is None:
            return default
        value = row[key]
        return default if value is None else value
