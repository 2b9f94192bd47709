# backend/homeskillet/domain/audit.py
from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..models import DocumentAccessLog
from .vocab import DOCUMENT_ACTIONS


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def _client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    fwd = request.headers.get("X-Forwarded-For")
    if fwd:
        return fwd.split(",")[0].strip()
    return request.client.host if request.client else None


def document_access_write(
    db: Session,
    *,
    document_id: str,
    user_id: Optional[str],
    action: str,
    request: Optional[Request] = None,
    info: Optional[dict[str, Any]] = None,
    commit: bool = False,
) -> DocumentAccessLog:
    """
    Appends one row to the document access trail.

    - Does NOT commit by default, so the caller's change and its trail land together.
    - Returns the row for tests / introspection.
    """
    if action not in DOCUMENT_ACTIONS:
        raise ValueError(f"unknown document action: {action}")

    row = DocumentAccessLog(
        document_id=document_id,
        user_id=user_id,
        action=action,
        ip_address=_client_ip(request),
        user_agent=(request.headers.get("User-Agent") if request is not None else None),
        additional_info_json=_dumps(info),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row
