"""
SkyFuel Battery Ledger - WebSocket API
Version: 1.1.1

Changelog:
v1.1.1 (2026-10-20): Live query opened after accept; search and status combine
v1.1.0 (2026-10-16): Per-battery history stream
v1.0.0 (2026-10-12): Live fleet snapshots driven by the change feed
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from typing import Callable, Optional, Set
import asyncio
import logging

from ..errors import SkyFuelError
from ..services.battery_store import BatteryStore
from ..services.change_feed import LiveQuery
from .batteries import entry_out
from .deps import get_store

router = APIRouter()
logger = logging.getLogger(__name__)

# Active WebSocket connections
active_connections: Set[WebSocket] = set()


async def _pump(websocket: WebSocket, query: LiveQuery, render):
    """Send every emission of the live query to the client"""
    first = True
    async for result in query:
        await websocket.send_json({
            "type": "initial" if first else "update",
            "data": render(result),
        })
        first = False


async def _serve(websocket: WebSocket, open_query: Callable[[], LiveQuery], render):
    await websocket.accept()
    try:
        query = open_query()
    except SkyFuelError as e:
        await websocket.close(code=1008, reason=e.message)
        return

    sender = None
    try:
        active_connections.add(websocket)
        logger.info(f"WebSocket client connected ({query.name}). Total connections: {len(active_connections)}")
        sender = asyncio.create_task(_pump(websocket, query, render))

        # Client messages: ping/pong keepalive only
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    finally:
        query.close()
        if sender is not None:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
        active_connections.discard(websocket)
        logger.info(f"WebSocket client removed. Total connections: {len(active_connections)}")


@router.websocket("/batteries")
async def batteries_feed(websocket: WebSocket, q: Optional[str] = None,
                         status: Optional[str] = None,
                         store: BatteryStore = Depends(get_store)):
    """
    Live fleet snapshots. The first message is the current list, then a
    full list is pushed after every committed change to the fleet.
    q and status combine; an unknown status closes the socket with 1008.
    """
    await _serve(websocket,
                 lambda: store.search(q, status) if q else store.filter_by_status(status),
                 lambda batteries: [b.model_dump(mode="json") for b in batteries])


@router.websocket("/batteries/{battery_id}/history")
async def history_feed(websocket: WebSocket, battery_id: int,
                       store: BatteryStore = Depends(get_store)):
    """Live ledger of one battery"""
    await _serve(websocket, lambda: store.query_history(battery_id),
                 lambda entries: [entry_out(e) for e in entries])
