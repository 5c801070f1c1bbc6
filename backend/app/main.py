# app/main.py
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app import models  # noqa: F401  registers tables on Base
from app.database import Base, engine
from app.dependencies import get_store
from app.endpoints import app_config, batch, build_router, bus_lines, dashboard, data_transfer, ws_catalog
from app.endpoints.errors import error_payload, status_for
from app.exceptions import CatalogError
from app.services.change_feed import create_change_feed
from app.settings import LOG_LEVEL, REDIS_URL

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Catalog Console API", version="1.0.0")


@app.on_event("startup")
async def startup_event():
    # Create database tables
    Base.metadata.create_all(bind=engine)

    # Relay commits from other instances into the local subscription hub
    feed = create_change_feed(get_store(), REDIS_URL)
    if feed is not None:
        asyncio.create_task(feed.listen())
        logger.info("✅ Change feed listener started")


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status = status_for(exc)
    if status >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status, content=error_payload(exc))


# Include HTTP routers
for collection in ("operators", "terminals", "facilities", "advertisements"):
    app.include_router(build_router(collection))
app.include_router(batch)
app.include_router(bus_lines)
app.include_router(app_config)
app.include_router(dashboard)
app.include_router(data_transfer)

# Mount WebSocket endpoints
app.add_api_websocket_route("/ws/bus-lines/terminals", ws_catalog.ws_terminal_view)
app.add_api_websocket_route("/ws/config", ws_catalog.ws_config)
app.add_api_websocket_route("/ws/catalog/{collection}/search", ws_catalog.ws_search)
app.add_api_websocket_route("/ws/catalog/{collection}", ws_catalog.ws_collection)


@app.get("/")
def root():
    return {"message": "API is running"}
