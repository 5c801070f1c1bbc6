# app/endpoints/records.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from app.dependencies import get_store
from app.exceptions import RecordNotFoundError, ValidationError
from app.schemas import BatchOpIn, BatchRequest, BulkDeleteRequest
from app.services.batch_executor import Delete, Insert, Update
from app.services.catalog_store import CatalogStore
from app.services.queries import prefix_query, token_query
from app.settings import MAX_BATCH_SIZE, PAGE_SIZE


def build_router(collection: str) -> APIRouter:
    """CRUD, search, paging, toggles and bulk delete for one catalog collection."""
    router = APIRouter(prefix=f"/{collection}", tags=[collection.title()])

    @router.get("")
    async def list_records(
        order_by: Optional[str] = Query(None, alias="orderBy"),
        q: str = "",
        token: str = "",
        store: CatalogStore = Depends(get_store),
    ):
        """All records in order. ``q`` = prefix search on the ordered field, ``token`` = whole-word search."""
        records = store.collection(collection)
        if token:
            return records.token_search(token, order_by)
        if q:
            return records.prefix_search(order_by or records.spec.default_order, q)
        return records.list_all(order_by)

    @router.get("/page")
    async def page_records(
        order_by: Optional[str] = Query(None, alias="orderBy"),
        q: str = "",
        token: str = "",
        cursor: Optional[str] = None,
        page_size: int = Query(PAGE_SIZE, alias="pageSize", ge=1, le=MAX_BATCH_SIZE),
        store: CatalogStore = Depends(get_store),
    ):
        records = store.collection(collection)
        field = order_by or records.spec.default_order
        if token:
            predicate = token_query(token)
        else:
            field = records.spec.search_field(field) if q else field
            predicate = prefix_query(field, q)
        return records.page(field, predicate, cursor, page_size).to_dict()

    @router.get("/{record_id}")
    async def get_record(record_id: str, store: CatalogStore = Depends(get_store)):
        record = store.collection(collection).get(record_id)
        if record is None:
            raise RecordNotFoundError(collection, record_id)
        return record

    @router.post("", status_code=201)
    async def add_record(payload: Dict[str, Any] = Body(...), store: CatalogStore = Depends(get_store)):
        return store.collection(collection).add(payload)

    @router.patch("/{record_id}")
    async def edit_record(record_id: str, payload: Dict[str, Any] = Body(...),
                          store: CatalogStore = Depends(get_store)):
        return store.collection(collection).edit(record_id, payload)

    @router.post("/{record_id}/toggle/{field}")
    async def toggle_record(record_id: str, field: str, store: CatalogStore = Depends(get_store)):
        return store.collection(collection).toggle(record_id, field)

    @router.delete("/{record_id}")
    async def delete_record(record_id: str, store: CatalogStore = Depends(get_store)):
        store.collection(collection).delete(record_id)
        return {"deleted": record_id}

    @router.post("/bulk-delete")
    async def bulk_delete(request: BulkDeleteRequest, store: CatalogStore = Depends(get_store)):
        return {"deleted": store.collection(collection).bulk_delete(request.ids)}

    return router


batch_router = APIRouter(tags=["Batch"])


def to_operation(op: BatchOpIn):
    if op.op == "insert":
        return Insert(op.collection, op.data)
    if not op.id:
        raise ValidationError(f"'{op.op}' operations need an id.")
    if op.op == "update":
        return Update(op.collection, op.id, op.data)
    return Delete(op.collection, op.id)


@batch_router.post("/batch")
async def commit_batch(request: BatchRequest, store: CatalogStore = Depends(get_store)):
    """Commit all operations atomically or none of them."""
    results = store.commit_batch([to_operation(op) for op in request.ops])
    return {"committed": len(results), "results": results}
