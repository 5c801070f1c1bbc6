# app/dependencies.py
from app.database import SessionLocal
from app.services.catalog_store import CatalogStore

_store = None


def get_store() -> CatalogStore:
    """FastAPI dependency returning the process-wide catalog store."""
    global _store
    if _store is None:
        _store = CatalogStore(SessionLocal)
    return _store
