# tests/test_paginator.py
import pytest

from app.exceptions import StaleCursorError, ValidationError
from app.services.queries import prefix_query


def test_pages_walk_every_record_once_in_order(store):
    for i in range(45):
        store.operators.add({"name": f"Operator {i:02d}"})

    page = store.operators.page()
    assert len(page.items) == 20
    assert page.has_more
    names = [r["name"] for r in page.items]
    while page.has_more:
        page = store.operators.page(cursor=page.cursor)
        names.extend(r["name"] for r in page.items)

    assert names == [f"Operator {i:02d}" for i in range(45)]


def test_encoded_cursor_resumes_the_same_query(store):
    for name in ("a", "b", "c"):
        store.operators.add({"name": name})

    first = store.operators.page(page_size=2)
    second = store.operators.page(cursor=first.cursor.encode(), page_size=2)

    assert [r["name"] for r in second.items] == ["c"]
    assert not second.has_more


def test_ties_on_the_ordered_field_are_broken_by_id(store):
    for _ in range(25):
        store.operators.add({"name": "Same"})

    first = store.operators.page()
    second = store.operators.page(cursor=first.cursor)
    ids = [r["id"] for r in first.items + second.items]

    assert len(ids) == 25
    assert len(set(ids)) == 25


def test_exactly_full_page_reports_more_then_empty(store):
    for i in range(20):
        store.operators.add({"name": f"Op {i:02d}"})

    first = store.operators.page()
    second = store.operators.page(cursor=first.cursor)

    assert first.has_more
    assert second.items == []
    assert not second.has_more
    assert second.cursor == first.cursor


def test_cursor_from_another_query_is_stale(store):
    store.operators.add({"name": "Shwe"})
    page = store.operators.page()

    with pytest.raises(StaleCursorError):
        store.operators.page(predicate=prefix_query("nameLower", "sh"), cursor=page.cursor)
    with pytest.raises(StaleCursorError):
        store.operators.page(order_by="id", cursor=page.cursor.encode())


def test_malformed_cursor_token_is_stale(store):
    with pytest.raises(StaleCursorError):
        store.operators.page(cursor="not-a-cursor")


def test_page_size_must_be_positive(store):
    with pytest.raises(ValidationError):
        store.operators.page(page_size=0)


def test_page_to_dict_uses_opaque_token(store):
    store.operators.add({"name": "Shwe"})

    body = store.operators.page().to_dict()

    assert body["hasMore"] is False
    assert isinstance(body["cursor"], str)
    assert [r["name"] for r in body["items"]] == ["Shwe"]
