# app/endpoints/ws_catalog.py
import asyncio
import json
import logging
from typing import Optional

from fastapi import Depends, Query, WebSocket, WebSocketDisconnect

from app.dependencies import get_store
from app.endpoints.errors import error_payload
from app.exceptions import CatalogError
from app.services.catalog_store import CatalogStore
from app.services.denormalization import ReadMode
from app.services.queries import prefix_query, token_query
from app.settings import SEARCH_DEBOUNCE_MS
from app.utils.debounce import Debouncer

# Open live-query sockets
clients = set()

logger = logging.getLogger(__name__)


def _dump(message) -> str:
    return json.dumps(message, default=str)


def offer_latest(queue: asyncio.Queue, message: dict):
    """Queue ``message``, replacing an unsent snapshot; every snapshot is complete on its own."""
    if queue.full():
        pending = queue.get_nowait()
        if "error" in pending:
            queue.put_nowait(pending)
            return
    queue.put_nowait(message)


async def _forward(websocket: WebSocket, queue: asyncio.Queue):
    """Send queued snapshots in order; an error message ends the stream."""
    try:
        while True:
            message = await queue.get()
            await websocket.send_text(_dump(message))
            if "error" in message:
                await websocket.close(code=1011)
                return
    except (WebSocketDisconnect, RuntimeError):
        return


async def _wait_for_disconnect(websocket: WebSocket):
    try:
        while True:
            await websocket.receive_text()
    except (WebSocketDisconnect, RuntimeError):
        return


async def _stream(websocket: WebSocket, open_subscription):
    """
    Bridge a hub subscription onto a websocket.

    Snapshots may be produced on any thread that commits a write, so they are
    handed to the socket's event loop through a queue.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=1)

    def on_snapshot(snapshot):
        loop.call_soon_threadsafe(offer_latest, queue, {"snapshot": snapshot})

    def on_error(error: CatalogError):
        loop.call_soon_threadsafe(offer_latest, queue, error_payload(error))

    try:
        subscription = open_subscription(on_snapshot, on_error)
    except CatalogError as e:
        await websocket.send_text(_dump(error_payload(e)))
        await websocket.close(code=1011)
        return

    clients.add(websocket)
    logger.info(f"✅ Client {id(websocket)} subscribed. Total: {len(clients)}")
    sender = asyncio.create_task(_forward(websocket, queue))
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        subscription.cancel()
        sender.cancel()
        receiver.cancel()
        clients.discard(websocket)
        logger.info(f"🔌 Client {id(websocket)} disconnected. Total: {len(clients)}")


async def ws_collection(websocket: WebSocket, collection: str, order_by: Optional[str] = Query(None, alias="orderBy"),
                        q: str = "", token: str = "", store: CatalogStore = Depends(get_store)):
    """Live ordered snapshot of a collection, re-sent after every committed write."""

    def open_subscription(on_snapshot, on_error):
        records = store.collection(collection)
        field = order_by or records.spec.default_order
        if token:
            predicate = token_query(token)
        else:
            field = records.spec.search_field(field) if q else field
            predicate = prefix_query(field, q)
        return records.subscribe_all(on_snapshot, field, predicate, on_error)

    await _stream(websocket, open_subscription)


async def ws_terminal_view(websocket: WebSocket, view: ReadMode = ReadMode.LIVE_JOIN, q: str = "",
                           store: CatalogStore = Depends(get_store)):
    await _stream(
        websocket,
        lambda on_snapshot, on_error: store.subscribe_terminal_view(on_snapshot, view, on_error, term=q),
    )


async def ws_config(websocket: WebSocket, store: CatalogStore = Depends(get_store)):
    await _stream(websocket, lambda on_snapshot, on_error: store.config.subscribe(on_snapshot, on_error))


async def ws_search(websocket: WebSocket, collection: str, field: Optional[str] = None,
                    store: CatalogStore = Depends(get_store)):
    """
    Incremental prefix search.

    Client sends ``{"term": "..."}`` while typing; the query restarts from the
    first page once typing pauses. ``{"more": true}`` fetches the next page.
    """
    await websocket.accept()
    try:
        records = store.collection(collection)
    except CatalogError as e:
        await websocket.send_text(_dump(error_payload(e)))
        await websocket.close(code=1011)
        return

    field = records.spec.search_field(field or records.spec.default_order)
    state = {"predicate": None, "page": None}

    async def send_error(error: CatalogError):
        await websocket.send_text(_dump(error_payload(error)))

    async def restart(term: str):
        try:
            state["predicate"] = prefix_query(field, term)
            state["page"] = records.page(field, state["predicate"])
        except CatalogError as e:
            await send_error(e)
            return
        page = state["page"]
        await websocket.send_text(_dump({
            "term": term, "reset": True, "items": page.items, "hasMore": page.has_more,
        }))

    async def more():
        page = state["page"]
        if page is None or not page.has_more:
            await websocket.send_text(_dump({"reset": False, "items": [], "hasMore": False}))
            return
        try:
            state["page"] = records.page(field, state["predicate"], page.cursor)
        except CatalogError as e:
            await send_error(e)
            return
        page = state["page"]
        await websocket.send_text(_dump({"reset": False, "items": page.items, "hasMore": page.has_more}))

    debouncer = Debouncer(SEARCH_DEBOUNCE_MS / 1000, restart)
    try:
        await restart("")
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                await websocket.send_text(_dump({"error": {"kind": "validation_error",
                                                           "message": "Invalid request format"}}))
                continue
            if not isinstance(message, dict):
                continue
            if "term" in message:
                debouncer.trigger(str(message["term"] or ""))
            elif message.get("more"):
                await more()
    except WebSocketDisconnect:
        logger.info(f"🔌 Search client {id(websocket)} disconnected")
    finally:
        debouncer.cancel()
