"""
==============================================================================
Browse WebSocket Module
==============================================================================

Interactive browsing with pushed updates.

Flow:
-----
1. Client connects, receives the current tree
2. Client toggles liners/ships and types queries
3. Server answers with updated trees and filter counts
4. When an opened ship's inspection fetch completes, the rows are pushed,
   but only while that ship is still visible and open

Messages (Client → Server):
---------------------------
- {"type": "get_tree"}
- {"type": "toggle_liner", "liner_id": "...", "open": true|false|null}
- {"type": "toggle_ship", "ship_id": "...", "open": true|false|null}
- {"type": "filter", "query": "star"}
- {"type": "clear_filter"}                    → Escape key
- {"type": "collapse_all"}
- {"type": "stop"}

Messages (Server → Client):
---------------------------
- {"type": "init", "tree": {...}}
- {"type": "tree", "tree": {...}}
- {"type": "filter", "filter": {...}, "tree": {...}}
- {"type": "details", "ship_id": "...", "rows": [...], "error": false, "state": "loaded"}
- {"type": "error", "code": "...", "message": "..."}

All outgoing messages go through one queue drained by a single writer task.

==============================================================================
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from shipscores.catalog import DetailResult
from shipscores.core import exceptions
from shipscores.core.exceptions import AppException
from shipscores.core.dependencies import get_browse_service_ws
from shipscores.schemas.catalog import DetailResponse, FilterView, TreeSnapshot
from shipscores.services import BrowseService


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class BrowseWebSocketHandler:
    """
    Handler for the browse WebSocket.

    Translates client messages into BrowseService operations and pushes
    detail results as fetches settle.
    """

    def __init__(self, websocket: WebSocket, service: BrowseService):
        self._websocket = websocket
        self._service = service
        self._outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._unsubscribe = None

    # =========================================================================
    # OUTGOING
    # =========================================================================

    def _send(self, message: Dict[str, Any]) -> None:
        self._outbox.put_nowait(message)

    def _send_error(self, message: str, code: str = "ERROR") -> None:
        self._send({"type": "error", "code": code, "message": message})

    def _tree_payload(self) -> Dict[str, Any]:
        snapshot = TreeSnapshot.create(
            self._service.tree,
            self._service.cache,
            self._service.last_filter,
        )
        return snapshot.model_dump(mode="json", exclude={"success", "report"})

    def _send_details(self, ship_id: str, result: DetailResult) -> None:
        response = DetailResponse.from_result(
            ship_id, result, self._service.detail_state(ship_id)
        )
        payload = response.model_dump(mode="json", exclude={"success"})
        self._send({"type": "details", **payload})

    async def _writer(self) -> None:
        while True:
            message = await self._outbox.get()
            if message is None:
                break
            try:
                await self._websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info(f"Stopped sending to browse client: {e}")
                break

    # =========================================================================
    # SERVICE EVENTS
    # =========================================================================

    def _on_event(self, event: str, payload: Dict[str, Any]) -> None:
        if event == "reloaded":
            self._send({"type": "tree", "tree": self._tree_payload()})
        elif event == "details":
            self._push_details_if_shown(payload["ship_id"], payload["error"])

    def _push_details_if_shown(self, ship_id: str, error: bool) -> None:
        tree = self._service.tree
        if not tree.has_item(ship_id):
            return
        ship = tree.get_item(ship_id)
        if not (ship.open and tree.is_on_screen(ship)):
            logger.debug(f"Details for {ship_id} cached but not pushed (not shown)")
            return

        entry = self._service.cache.entry(ship_id)
        rows = list(entry.rows) if entry and not error else []
        self._send_details(ship_id, DetailResult(rows=rows, error=error))

    # =========================================================================
    # INCOMING
    # =========================================================================

    def handle_toggle_liner(self, data: dict) -> None:
        liner_id = data.get("liner_id")
        if not liner_id:
            self._send_error("liner_id is required", "INVALID_MESSAGE")
            return
        self._service.toggle_group(liner_id, data.get("open"))
        self._send({"type": "tree", "tree": self._tree_payload()})

    def handle_toggle_ship(self, data: dict) -> None:
        ship_id = data.get("ship_id")
        if not ship_id:
            self._send_error("ship_id is required", "INVALID_MESSAGE")
            return

        future = self._service.toggle_item(ship_id, data.get("open"))
        self._send({"type": "tree", "tree": self._tree_payload()})

        # Cached rows resolve immediately and never raise a "details" event.
        if future is not None and future.done():
            self._send_details(ship_id, future.result())

    def handle_filter(self, data: dict) -> None:
        result = self._service.apply_filter(data.get("query") or "")
        self._send({
            "type": "filter",
            "filter": FilterView.from_result(result).model_dump(),
            "tree": self._tree_payload(),
        })

    def handle_clear_filter(self) -> None:
        self.handle_filter({"query": ""})

    def handle_collapse_all(self) -> None:
        self._service.collapse_all()
        self._send({"type": "tree", "tree": self._tree_payload()})

    def dispatch(self, data: dict) -> bool:
        """
        Handle one client message.

        Returns:
            False when the client asked to stop
        """
        msg_type = data.get("type")

        try:
            if msg_type == "get_tree":
                self._send({"type": "tree", "tree": self._tree_payload()})
            elif msg_type == "toggle_liner":
                self.handle_toggle_liner(data)
            elif msg_type == "toggle_ship":
                self.handle_toggle_ship(data)
            elif msg_type == "filter":
                self.handle_filter(data)
            elif msg_type == "clear_filter":
                self.handle_clear_filter()
            elif msg_type == "collapse_all":
                self.handle_collapse_all()
            elif msg_type == "stop":
                logger.info("🛑 Client requested stop")
                return False
            else:
                self._send_error(f"Unknown message type: {msg_type}", "UNKNOWN_TYPE")
        except AppException as e:
            self._send_error(e.message, e.code)

        return True

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("🧭 Browse WebSocket connected")

        if not self._service.is_loaded:
            error = exceptions.catalog_not_loaded()
            await self._websocket.send_json({"type": "error", "code": error.code, "message": error.message})
            await self._websocket.close()
            return

        writer = asyncio.create_task(self._writer())
        self._unsubscribe = self._service.subscribe(self._on_event)
        self._send({"type": "init", "tree": self._tree_payload()})

        try:
            while True:
                data = await self._websocket.receive_json()
                if not isinstance(data, dict):
                    self._send_error("Messages must be JSON objects", "INVALID_MESSAGE")
                    continue
                if not self.dispatch(data):
                    break

        except WebSocketDisconnect:
            logger.info("🧭 Browse client disconnected")
        except Exception as e:
            logger.error(f"Browse WebSocket error: {e}")
        finally:
            self._unsubscribe()
            self._outbox.put_nowait(None)
            await writer
            logger.info("✅ Browse WebSocket closed")


@router.websocket("/ws/browse")
async def websocket_browse(websocket: WebSocket):
    """
    WebSocket endpoint for interactive browsing.

    Supports liner/ship toggles, live search and pushed inspection rows.
    """
    service = get_browse_service_ws(websocket)
    handler = BrowseWebSocketHandler(websocket, service)
    await handler.run()
