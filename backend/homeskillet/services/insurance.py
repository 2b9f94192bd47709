# backend/homeskillet/services/insurance.py
"""
Insurance inventory: item field coercion, valuations and the read-side rollups
behind /insurance/summary and the claim report.

Values are replacement cost unless stated otherwise; an item with no
replacement cost counts as 0.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.vocab import INSURANCE_CATEGORIES, ITEM_CONDITIONS, VALUATION_TYPES
from ..errors import field_error
from ..models import InsuranceItem, InsuranceItemPhoto, InsuranceValuation, User, _now
from .coerce import dumps, one_of, parse_bool, parse_date, parse_float, parse_int, parse_object, parse_str_list

HIGH_VALUE_THRESHOLD = 5000.0

_TEXT_FIELDS = (
    "description",
    "subcategory",
    "room_location",
    "specific_location",
    "brand",
    "model",
    "serial_number",
    "purchase_location",
    "appraisal_type",
    "insurance_policy_number",
    "notes",
)
_MONEY_FIELDS = ("purchase_price", "current_estimated_value", "replacement_cost", "insurance_coverage_amount")
_FLAG_FIELDS = ("is_insured", "requires_separate_coverage", "is_favorite")
_DATE_FIELDS = ("purchase_date", "last_appraised_date")


def apply_item_fields(item: InsuranceItem, payload: dict[str, Any]) -> None:
    """Copies the keys present in `payload` onto `item`, coercing as it goes."""
    if "name" in payload:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise field_error("name", "name is required")
        item.name = name[:200]
    if "category" in payload:
        item.category = one_of(payload["category"], INSURANCE_CATEGORIES, "category")
    if "condition" in payload:
        item.condition = one_of(payload["condition"] or "good", ITEM_CONDITIONS, "condition")

    for k in _TEXT_FIELDS:
        if k in payload:
            v = payload[k]
            setattr(item, k, (str(v).strip() or None) if v is not None else None)
    for k in _MONEY_FIELDS:
        if k in payload:
            v = parse_float(payload[k], k)
            if v is not None and v < 0:
                raise field_error(k, f"{k} must not be negative")
            setattr(item, k, v)
    for k in _FLAG_FIELDS:
        if k in payload:
            setattr(item, k, bool(parse_bool(payload[k])))
    for k in _DATE_FIELDS:
        if k in payload:
            setattr(item, k, parse_date(payload[k], k))

    if "currency" in payload:
        item.currency = (str(payload["currency"] or "USD").strip().upper() or "USD")[:3]
    if "priority" in payload:
        pr = parse_int(payload["priority"], "priority")
        if pr is None or pr < 1 or pr > 3:
            raise field_error("priority", "priority must be 1, 2 or 3")
        item.priority = pr
    if "tags" in payload:
        item.tags_json = dumps(parse_str_list(payload["tags"]))
    if "custom_fields" in payload:
        item.custom_fields_json = dumps(parse_object(payload["custom_fields"], "custom_fields") or {})


def recent_valuations(db: Session, item_id: str, *, limit: int = 5) -> list[InsuranceValuation]:
    return list(
        db.scalars(
            select(InsuranceValuation)
            .where(InsuranceValuation.item_id == item_id)
            .order_by(InsuranceValuation.valuation_date.desc(), InsuranceValuation.is_current.desc(), InsuranceValuation.created_at.desc())
            .limit(limit)
        ).all()
    )


def record_valuation(db: Session, item: InsuranceItem, user: User, payload: dict[str, Any]) -> InsuranceValuation:
    """
    Adds a valuation and makes it the current one.

    Older rows for the item are flagged not current, and the item's value
    fields follow the new row. Does not commit.
    """
    appraised = parse_float(payload.get("appraised_value"), "appraised_value")
    if appraised is None:
        raise field_error("appraised_value", "appraised_value is required")
    if appraised < 0:
        raise field_error("appraised_value", "appraised_value must not be negative")
    replacement = parse_float(payload.get("replacement_cost"), "replacement_cost")
    valuation_date = parse_date(payload.get("valuation_date"), "valuation_date") or date.today()
    vtype = one_of(payload.get("valuation_type") or "self_estimate", VALUATION_TYPES, "valuation_type")

    for old in db.scalars(
        select(InsuranceValuation).where(InsuranceValuation.item_id == item.id, InsuranceValuation.is_current.is_(True))
    ).all():
        old.is_current = False
        db.add(old)

    row = InsuranceValuation(
        item_id=item.id,
        appraised_value=appraised,
        replacement_cost=replacement,
        valuation_date=valuation_date,
        valuation_type=vtype,
        appraiser_name=(str(payload.get("appraiser_name") or "").strip() or None),
        notes=payload.get("notes"),
        is_current=True,
        created_by=user.id,
    )
    db.add(row)

    item.current_estimated_value = appraised
    if replacement is not None:
        item.replacement_cost = replacement
    item.last_appraised_date = valuation_date
    item.appraisal_type = vtype
    db.add(item)
    return row


# -------------------------
# Rollups
# -------------------------
def _value(item: InsuranceItem) -> float:
    return float(item.replacement_cost or 0.0)


def _group(items: Iterable[InsuranceItem], key) -> "OrderedDict[Any, list[InsuranceItem]]":
    out: "OrderedDict[Any, list[InsuranceItem]]" = OrderedDict()
    for it in items:
        out.setdefault(key(it), []).append(it)
    return out


def _by_count(groups: "OrderedDict[Any, list[InsuranceItem]]") -> list[tuple[Any, list[InsuranceItem]]]:
    return sorted(groups.items(), key=lambda kv: len(kv[1]), reverse=True)


def _coverage_rate(insured: int, total: int) -> int:
    return round(insured / total * 100) if total else 0


@dataclass(frozen=True)
class InventorySummary:
    overview: dict[str, Any]
    breakdown: dict[str, Any]
    alerts: dict[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {"overview": self.overview, "breakdown": self.breakdown, "alerts": self.alerts}


def inventory_summary(items: list[InsuranceItem]) -> InventorySummary:
    total = len(items)
    total_value = sum(_value(i) for i in items)
    insured = sum(1 for i in items if i.is_insured)
    special = sum(1 for i in items if i.requires_separate_coverage)
    high = [i for i in items if _value(i) > HIGH_VALUE_THRESHOLD]
    uninsured = [i for i in items if not i.is_insured]
    recent_cutoff = _now() - timedelta(days=30)

    return InventorySummary(
        overview={
            "total_items": total,
            "total_value": total_value,
            "average_value": (total_value / total) if total else 0.0,
            "insured_items": insured,
            "special_coverage_items": special,
            "insurance_coverage_rate": _coverage_rate(insured, total),
        },
        breakdown={
            "by_category": [
                {"category": k, "count": len(v), "total_value": sum(_value(i) for i in v)}
                for k, v in _by_count(_group(items, lambda i: i.category))
            ],
            "by_room": [
                {"room": k, "count": len(v), "total_value": sum(_value(i) for i in v)}
                for k, v in _by_count(_group((i for i in items if i.room_location), lambda i: i.room_location))
            ],
            "by_condition": [
                {"condition": k, "count": len(v)} for k, v in _by_count(_group(items, lambda i: i.condition))
            ],
        },
        alerts={
            "high_value_items": {"count": len(high), "total_value": sum(_value(i) for i in high)},
            "uninsured_items": {"count": len(uninsured), "total_value": sum(_value(i) for i in uninsured)},
            "recent_additions": sum(1 for i in items if i.created_at and i.created_at >= recent_cutoff),
        },
    )


def primary_photos(db: Session, item_ids: list[str]) -> dict[str, InsuranceItemPhoto]:
    if not item_ids:
        return {}
    rows = db.scalars(
        select(InsuranceItemPhoto).where(InsuranceItemPhoto.item_id.in_(item_ids), InsuranceItemPhoto.is_primary.is_(True))
    ).all()
    return {p.item_id: p for p in rows}


def claim_report_summary(items: list[InsuranceItem]) -> tuple[dict[str, Any], dict[str, Any]]:
    total = len(items)
    total_value = sum(_value(i) for i in items)
    insured = sum(1 for i in items if i.is_insured)

    summary = {
        "total_items": total,
        "total_estimated_value": total_value,
        "average_item_value": (total_value / total) if total else 0.0,
        "insured_items": insured,
        "insurance_coverage_rate": _coverage_rate(insured, total),
        "high_value_items": sum(1 for i in items if _value(i) > HIGH_VALUE_THRESHOLD),
    }
    breakdown = {
        "by_room": [
            {
                "room": room,
                "count": len(group),
                "total_value": sum(_value(i) for i in group),
                "sample_items": [i.name for i in group[:5]],
            }
            for room, group in _group(items, lambda i: i.room_location or "Unassigned").items()
        ],
        "by_category": [
            {"category": cat, "count": len(group), "total_value": sum(_value(i) for i in group)}
            for cat, group in _group(items, lambda i: i.category).items()
        ],
    }
    return summary, breakdown
