# tests/test_prefix_query.py
import pytest

from app.exceptions import IndexMissingError, ValidationError
from app.services.queries import HIGH_SENTINEL, Equals, Prefix, prefix_query


def _add_operators(store, *names):
    for name in names:
        store.operators.add({"name": name})


def test_prefix_matches_only_prefixed_values(store):
    _add_operators(store, "b", "ab", "aab", "aa")

    names = [record["name"] for record in store.operators.prefix_search("nameLower", "aa")]

    assert names == ["aa", "aab"]


def test_prefix_is_case_insensitive(store):
    _add_operators(store, "Shwe Mandalar", "shwe express", "Mandalar Minn")

    names = [record["name"] for record in store.operators.prefix_search("nameLower", "SHWE")]

    assert names == ["shwe express", "Shwe Mandalar"]


def test_empty_term_means_no_filter(store):
    _add_operators(store, "b", "a")

    assert prefix_query("nameLower", "") is None
    assert [r["name"] for r in store.operators.prefix_search("nameLower", "")] == ["a", "b"]


def test_prefix_bounds_use_high_sentinel():
    assert Prefix("nameLower", "Ab").bounds() == ("ab", "ab" + HIGH_SENTINEL)


def test_range_on_a_field_other_than_the_ordering_is_rejected(store):
    with pytest.raises(IndexMissingError):
        store.terminals.list_all(order_by="operatorNameLower", predicate=Prefix("city", "yan"))


def test_ordering_by_unindexed_field_is_rejected(store):
    with pytest.raises(IndexMissingError):
        store.operators.list_all(order_by="verified")


def test_equality_on_unindexed_field_is_rejected(store):
    with pytest.raises(IndexMissingError):
        store.terminals.list_all(predicate=Equals("address", "Aung Mingalar"))


def test_unknown_field_is_a_validation_error(store):
    with pytest.raises(ValidationError):
        store.operators.list_all(order_by="colour")


def test_prefix_search_ignores_stored_casing(store):
    store.advertisements.add({"title": "Grand Opening", "contact": "09-1", "address": "Yangon"})
    store.advertisements.add({"title": "big sale", "contact": "09-2", "address": "Yangon"})
    operator = store.operators.add({"name": "Shwe"})
    store.terminals.add({"operatorId": operator["id"], "city": "Yangon", "address": "Highway"})
    store.facilities.add({"name": "City Care", "type": "clinic", "city": "Mandalay", "address": "78th Street"})

    assert [r["title"] for r in store.prefix_search("advertisements", "title", "Grand")] == ["Grand Opening"]
    assert [r["title"] for r in store.advertisements.prefix_search("titleLower", "BIG")] == ["big sale"]
    assert [r["city"] for r in store.terminals.prefix_search("city", "Yan")] == ["Yangon"]
    assert [r["name"] for r in store.facilities.prefix_search("city", "man")] == ["City Care"]


def test_prefix_on_a_field_without_lowercase_copy_is_rejected(store):
    with pytest.raises(ValidationError):
        store.advertisements.list_all(order_by="title", predicate=Prefix("title", "gra"))
    with pytest.raises(ValidationError):
        store.terminals.list_all(order_by="city", predicate=Prefix("city", "yan"))
