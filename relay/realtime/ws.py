"""
WebSocket Endpoint for Room Relay
=================================

Adapts FastAPI WebSockets to the message router.

Features:
    - One Session per accepted connection
    - Frames handled strictly in connection order
    - Per-frame error isolation (a failing frame never closes the socket)
    - Disconnect cleanup that leaves every joined room, even if the
      connection task is cancelled

See ``relay.realtime.router`` for the envelope catalogue.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from ..models import ErrorNotice
from .router import MessageRouter

logger = logging.getLogger("relay.realtime.ws")

# Router instance
realtime_router = APIRouter()


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for room chat.

    Each text frame is one JSON envelope; each server event is sent back as
    one JSON text frame.

    Args:
        websocket: WebSocket connection
    """
    router: MessageRouter = websocket.app.state.message_router

    await websocket.accept()
    session = router.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                await router.handle(session, data)
            except Exception as e:
                logger.error(
                    f"Error handling WebSocket message: {str(e)}",
                    extra={"session_id": session.id},
                    exc_info=True
                )
                await session.send(ErrorNotice(
                    message="Internal error processing message",
                    code="internal_error",
                ))

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected by client", extra={"session_id": session.id})

    except Exception as e:
        logger.error(f"WebSocket error: {str(e)}", exc_info=True)

    finally:
        await router.disconnect(session)


@realtime_router.get("/realtime/status")
async def realtime_status(request: Request):
    """
    Get real-time service status and statistics.

    Returns:
        dict: Connection and room statistics
    """
    router: MessageRouter = request.app.state.message_router

    return {
        "status": "ok",
        "active_connections": len(router.sessions),
        "active_rooms": len(router.registry),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
