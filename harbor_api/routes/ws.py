"""
WebSocket endpoint for configuration-change notifications.

Clients connect to /ws/projects/{project_id}/changes and receive one
{"event": "admin_config_changed", "project_id": ...} frame per write to that
project's sidebar. The subscription lives exactly as long as the socket.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from harbor.kernel.events import ConfigChanged
from harbor_api.dependencies import PROJECT_ID_RE, ws_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/projects/{project_id}/changes")
async def project_changes(websocket: WebSocket, project_id: str) -> None:
    if not PROJECT_ID_RE.match(project_id):
        await websocket.close(code=1008)
        return

    await websocket.accept()
    logger.info("ws: subscribed to changes for project=%s", project_id)

    async def forward(signal: ConfigChanged) -> None:
        await websocket.send_text(json.dumps(signal.to_dict()))

    subscription = ws_service(websocket).hub.subscribe(project_id, forward)
    try:
        await websocket.send_text(json.dumps({"event": "subscribed", "project_id": project_id}))
        while True:
            # Client messages are ignored; receiving keeps the disconnect visible.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("ws: disconnected from project=%s", project_id)
    finally:
        subscription.close()
