"""WebSocket endpoint streaming run events."""

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from uiforge.services.event_bus import event_bus

logger = structlog.get_logger()

router = APIRouter()


async def _send_json(websocket: WebSocket, data: dict):
    await websocket.send_text(json.dumps(data, default=str))


@router.websocket("/ws/runs/{run_id}")
async def run_websocket(websocket: WebSocket, run_id: str):
    """Stream events of one validation run.

    Protocol:
        Server → Client: JSON events (validation_pass_started, artifact_repaired, ...)
        Client → Server: {"type": "ping"} or {"type": "status"}

    On connect the server replays the run's event history first.
    """
    await websocket.accept()
    logger.info("ws_connected", run_id=run_id)

    async def ws_listener(event: dict):
        await _send_json(websocket, event)

    event_bus.subscribe(run_id, ws_listener)

    try:
        history = event_bus.get_history(run_id)
        if history:
            await _send_json(websocket, {
                "type": "event_history",
                "events": history,
                "count": len(history),
            })

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await _send_json(websocket, {"type": "error", "message": "Invalid JSON"})
                continue

            if not isinstance(message, dict):
                continue
            if message.get("type") == "ping":
                await _send_json(websocket, {"type": "pong"})
            elif message.get("type") == "status":
                run = await websocket.app.state.run_store.get(run_id)
                await _send_json(websocket, {
                    "type": "run_status",
                    "run_id": run_id,
                    "status": run.get("status") if run else None,
                    "attempt": run.get("attempt") if run else None,
                })

    except WebSocketDisconnect:
        pass
    finally:
        event_bus.unsubscribe(run_id, ws_listener)
        logger.info("ws_disconnected", run_id=run_id)
