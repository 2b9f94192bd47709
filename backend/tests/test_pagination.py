# backend/tests/test_pagination.py
from __future__ import annotations

from homeskillet.services.pagination import page_params, pagination_meta

SORTABLE = ("created_at", "title")


def test_defaults():
    p = page_params({}, sortable=SORTABLE)
    assert (p.page, p.limit, p.sort_by, p.sort_order) == (1, 20, "created_at", "desc")
    assert p.offset == 0


def test_clamps_page_and_limit():
    p = page_params({"page": "0", "limit": "5000"}, sortable=SORTABLE)
    assert p.page == 1
    assert p.limit == 100

    p = page_params({"page": "nope", "limit": "-3"}, sortable=SORTABLE)
    assert p.page == 1
    assert p.limit == 1


def test_sort_keys_in_either_case():
    assert page_params({"sortBy": "title", "sortOrder": "ASC"}, sortable=SORTABLE).sort_order == "asc"
    p = page_params({"sort_by": "title", "sort_order": "asc"}, sortable=SORTABLE)
    assert (p.sort_by, p.sort_order) == ("title", "asc")

    # unknown column or direction falls back
    p = page_params({"sortBy": "password_hash", "sortOrder": "sideways"}, sortable=SORTABLE, default_order="asc")
    assert (p.sort_by, p.sort_order) == ("created_at", "asc")


def test_meta():
    p = page_params({"page": "3", "limit": "10"}, sortable=SORTABLE)
    assert p.offset == 20
    meta = pagination_meta(p, 25)
    assert meta["pages"] == meta["total_pages"] == 3
    assert meta["has_next"] is False
    assert meta["has_prev"] is True
    assert pagination_meta(p, 0)["pages"] == 0
