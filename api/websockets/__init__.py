"""WebSocket endpoints for real-time notifications."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Any, Dict, Set
from datetime import datetime, timezone
import logging
import asyncio

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/ws",
    tags=["WebSocket"]
)

class ConnectionManager:
    """Tracks notification clients and fans events out to them.

    ``dispatch`` is the notifier interface used by the order and offer
    managers: it schedules the broadcast and returns immediately. Delivery
    failures are logged and the failing connection is dropped.
    """

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        self.pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket):
        """Add to active connections and accept the connection."""
        # Registered before the handshake completes
        self.active_connections.add(websocket)
        await websocket.accept()
        logger.info(f"Notification client connected ({len(self.active_connections)} active)")

    def disconnect(self, websocket: WebSocket):
        """Remove connection from active connections."""
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(f"Notification client disconnected ({len(self.active_connections)} active)")

    def dispatch(self, event: Dict[str, Any]) -> None:
        """Schedule a broadcast of ``event`` to every connected client."""
        try:
            task = asyncio.get_running_loop().create_task(self.broadcast(event))
        except RuntimeError:
            logger.error(f"No running event loop, dropped notification {event.get('method')}")
            return
        self.pending.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self.pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Notification broadcast failed: {task.exception()}")

    async def broadcast(self, event: Dict[str, Any]):
        """Send an event to all connected clients."""
        dead_connections = set()

        for connection in list(self.active_connections):
            try:
                await connection.send_json(event)
            except Exception as e:
                logger.error(f"Failed to send to connection: {e}")
                dead_connections.add(connection)

        # Clean up dead connections
        for dead in dead_connections:
            self.disconnect(dead)

    async def drain(self):
        """Wait for scheduled broadcasts to finish."""
        if self.pending:
            await asyncio.gather(*self.pending, return_exceptions=True)

@router.websocket("/ping")
async def ping_endpoint(websocket: WebSocket):
    """Simple ping endpoint to test WebSocket connectivity."""
    await websocket.accept()
    try:
        while True:
            data = await websocket.receive_json()
            if data.get("type") == "ping":
                await websocket.send_json({
                    "type": "pong",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                })
    except WebSocketDisconnect:
        pass

@router.websocket("/notifications")
async def notifications_endpoint(websocket: WebSocket):
    """Stream order and offer notifications to the client."""
    manager: ConnectionManager = websocket.app.state.notifier
    try:
        await manager.connect(websocket)
        # Incoming messages are ignored; the loop only detects disconnects
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)

# Export the router and connection manager
__all__ = ['router', 'ConnectionManager']
