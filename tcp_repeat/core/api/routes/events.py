"""
Event Routes - WebSocket observer channel.

A client connecting to /api/v1/events receives the onboarding sequence
(serverVersion, preferences, replayAvailable, networkInterfaces, captures,
playlists) and then every state broadcast until it disconnects. Messages
sent by the client are ignored.
"""

from aiohttp import WSMsgType, web

from tcp_repeat.core.logging_utils import get_module_logger

from ..controller import APIController


logger = get_module_logger("EventRoutes")

HEARTBEAT_SECONDS = 30.0


def setup_event_routes(app: web.Application, controller: APIController) -> None:
    """Register the observer WebSocket route."""
    app.router.add_get("/api/v1/events", events_handler)


async def events_handler(request: web.Request) -> web.StreamResponse:
    """GET /api/v1/events - Observer WebSocket."""
    controller: APIController = request.app["controller"]
    ws = web.WebSocketResponse(heartbeat=HEARTBEAT_SECONDS)
    await ws.prepare(request)

    if not await controller.attach_observer(ws):
        await ws.close()
        return ws

    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                logger.warning("Observer connection closed with exception %s", ws.exception())
    finally:
        controller.detach_observer(ws)

    return ws
