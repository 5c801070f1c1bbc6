# app/endpoints/dashboard.py
from fastapi import APIRouter, Depends

from app.dependencies import get_store
from app.services.catalog_store import CatalogStore

router = APIRouter()


@router.get("/dashboard")
async def dashboard(store: CatalogStore = Depends(get_store)):
    return {"counts": store.counts()}
