# app/endpoints/bus_lines.py
from fastapi import APIRouter, Depends

from app.dependencies import get_store
from app.services.catalog_store import CatalogStore
from app.services.denormalization import ReadMode

router = APIRouter(prefix="/bus-lines", tags=["Bus Lines"])


@router.get("/terminals")
async def terminal_view(view: ReadMode = ReadMode.LIVE_JOIN, q: str = "",
                        store: CatalogStore = Depends(get_store)):
    """
    Terminals with their operator display fields.

    ``view=live`` re-joins every terminal against current operators;
    ``view=snapshot`` returns the copies stored at write time.
    ``q`` keeps terminals whose operator name, city or address starts with it.
    """
    return store.terminal_view(view, q)


@router.post("/operators/{operator_id}/reconcile-terminals")
async def reconcile_terminals(operator_id: str, store: CatalogStore = Depends(get_store)):
    return {"operatorId": operator_id, "reconciled": store.reconcile_terminals(operator_id)}
