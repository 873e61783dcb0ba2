# sprintboard/api/v1/endpoints/realtime.py
"""WebSocket push channel"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sprintboard.core import tracing
from sprintboard.realtime.notifier import ChangeNotifier

router = APIRouter()


@router.websocket("/ws")
async def viewer_channel(websocket: WebSocket):
    """
    Registers the viewer for change events and answers its pings until the
    transport reports a disconnect.
    """
    notifier: ChangeNotifier = websocket.app.state.notifier

    await websocket.accept()
    connection = notifier.register(websocket)
    tracing.info("Viewer session opened", viewer_id=connection.id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")
            if raw is not None:
                notifier.handle_client_message(connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        notifier.unregister(connection)
        tracing.info("Viewer session closed", viewer_id=connection.id)
