"""Preferences Routes - Read and replace the server preferences."""

from aiohttp import web

from ..controller import APIController
from ..middleware import parse_json_body


def setup_preferences_routes(app: web.Application, controller: APIController) -> None:
    """Register preferences routes."""
    app.router.add_get("/api/v1/preferences", get_preferences_handler)
    app.router.add_post("/api/v1/preferences", set_preferences_handler)


async def get_preferences_handler(request: web.Request) -> web.Response:
    """GET /api/v1/preferences - Current preferences."""
    controller: APIController = request.app["controller"]
    return web.json_response({"preferences": await controller.get_preferences()})


async def set_preferences_handler(request: web.Request) -> web.Response:
    """POST /api/v1/preferences - Replace preferences (pathToTcpreplay and pcapsDir required)."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return web.json_response(await controller.set_preferences(body))
