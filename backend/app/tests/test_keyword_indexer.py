# tests/test_keyword_indexer.py
from app.services.keyword_indexer import index, keywords_for


def test_index_has_whole_value_and_each_word():
    assert index(["Shwe Mandalar Express"]) == {"shwe mandalar express", "shwe", "mandalar", "express"}


def test_index_skips_empty_fields():
    assert index([None, "", "   ", "Yangon"]) == {"yangon"}


def test_keywords_for_only_uses_designated_fields():
    values = {"name": "Asia Royal", "city": "Yangon", "type": "clinic", "address": "No. 14 Baho Road"}

    assert keywords_for(values, ("name", "city", "type")) == ["asia", "asia royal", "clinic", "royal", "yangon"]
