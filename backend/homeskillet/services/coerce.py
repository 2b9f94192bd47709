# backend/homeskillet/services/coerce.py
"""Loose input coercion for the dict-bodied routes (tasks, documents, insurance)."""
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Optional

from ..errors import field_error


def dumps(v: Any) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def loads(s: Optional[str], default: Any = None) -> Any:
    if not s:
        return default
    try:
        return json.loads(s)
    except (TypeError, ValueError):
        return default


def parse_date(raw: Any, field: str) -> Optional[date]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise field_error(field, f"{field} must be a date (YYYY-MM-DD)")


def parse_float(raw: Any, field: str) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise field_error(field, f"{field} must be a number")


def parse_int(raw: Any, field: str) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise field_error(field, f"{field} must be an integer")


def parse_bool(raw: Any) -> Optional[bool]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def parse_str_list(raw: Any) -> list[str]:
    """Accepts a list, a JSON array string, or a comma separated string."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, (list, tuple)):
        return [str(x).strip() for x in raw if str(x).strip()]
    s = str(raw).strip()
    if s.startswith("["):
        parsed = loads(s, default=[])
        if isinstance(parsed, list):
            return [str(x).strip() for x in parsed if str(x).strip()]
    return [p.strip() for p in s.split(",") if p.strip()]


def parse_object(raw: Any, field: str) -> Optional[dict[str, Any]]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        return raw
    parsed = loads(str(raw))
    if not isinstance(parsed, dict):
        raise field_error(field, f"{field} must be an object")
    return parsed


def one_of(raw: Any, allowed: tuple[str, ...], field: str) -> str:
    val = str(raw or "").strip()
    if val not in allowed:
        raise field_error(field, f"{field} must be one of: {', '.join(allowed)}")
    return val


def iso(v: Any) -> Any:
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    return v
