# app/endpoints/app_config.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.dependencies import get_store
from app.services.catalog_store import CatalogStore

router = APIRouter(prefix="/config", tags=["App Config"])


@router.get("")
async def get_config(store: CatalogStore = Depends(get_store)):
    return store.config.get()


@router.patch("")
async def save_config(payload: Dict[str, Any] = Body(...), store: CatalogStore = Depends(get_store)):
    """Merge the given fields into the app settings."""
    return store.config.save(payload)
