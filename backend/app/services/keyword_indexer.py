# app/services/keyword_indexer.py
from typing import Iterable, List, Mapping, Optional, Sequence, Set


def index(fields: Iterable[Optional[str]]) -> Set[str]:
    """
    Build the search token set for a record.

    Every field contributes its whole lowercased value plus each
    whitespace-separated word. Empty and missing fields contribute nothing.
    """
    tokens = set()
    for field in fields:
        if not field:
            continue
        text = str(field).lower()
        whole = text.strip()
        if whole:
            tokens.add(whole)
        tokens.update(text.split())
    return tokens


def keywords_for(values: Mapping[str, object], field_names: Sequence[str]) -> List[str]:
    """Token set for the designated fields of ``values``, sorted for stable storage."""
    return sorted(index(values.get(name) for name in field_names))
