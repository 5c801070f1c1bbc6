# app/endpoints/data_transfer.py
from datetime import date

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from app.dependencies import get_store
from app.services.catalog_store import CatalogStore
from app.services.csv_transfer import export_frame, import_frame, read_csv, template_frame, to_csv_text

router = APIRouter(tags=["Import / Export"])


def _csv_response(frame, filename: str) -> Response:
    # UTF-8 BOM so spreadsheet apps detect the encoding
    return Response(
        content="\ufeff" + to_csv_text(frame),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import/{collection}")
async def import_csv(collection: str, file: UploadFile = File(...), store: CatalogStore = Depends(get_store)):
    """
    Upload a CSV file and insert its valid rows; invalid rows are reported, not fatal.
    """
    if not (file.filename or "").endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are allowed.")
    frame = read_csv(file.file)
    return import_frame(store, collection, frame).to_dict()


@router.get("/export/{collection}")
async def export_csv(collection: str, store: CatalogStore = Depends(get_store)):
    frame = export_frame(store, collection)
    return _csv_response(frame, f"{collection}_export_{date.today().isoformat()}.csv")


@router.get("/templates/{collection}")
async def download_template(collection: str):
    return _csv_response(template_frame(collection), f"{collection}_template.csv")
