"""Playlist Routes - Create, replace, rename, delete and play playlists."""

from aiohttp import web

from ..controller import APIController
from ..middleware import create_error_response, parse_json_body


def setup_playlist_routes(app: web.Application, controller: APIController) -> None:
    """Register playlist routes."""
    app.router.add_get("/api/v1/playlists", list_playlists_handler)
    app.router.add_post("/api/v1/playlists", create_playlist_handler)
    app.router.add_put("/api/v1/playlists/{name}", replace_playlist_handler)
    app.router.add_delete("/api/v1/playlists/{name}", delete_playlist_handler)
    app.router.add_put("/api/v1/playlists/{name}/settings", update_settings_handler)
    app.router.add_post("/api/v1/playlists/{name}/rename", rename_playlist_handler)
    app.router.add_post("/api/v1/playlists/{name}/play", play_playlist_handler)


async def list_playlists_handler(request: web.Request) -> web.Response:
    """GET /api/v1/playlists - All playlists, All first."""
    controller: APIController = request.app["controller"]
    return web.json_response({"playlists": await controller.list_playlists()})


async def create_playlist_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playlists - Create an empty playlist."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    if not isinstance(body, dict) or not body.get("name"):
        return create_error_response("MISSING_NAME", "'name' field is required", status=400)
    result = await controller.create_playlist(body["name"], body.get("settings"))
    return web.json_response(result, status=201)


async def replace_playlist_handler(request: web.Request) -> web.Response:
    """PUT /api/v1/playlists/{name} - Replace settings and membership."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return web.json_response(await controller.replace_playlist(request.match_info["name"], body))


async def update_settings_handler(request: web.Request) -> web.Response:
    """PUT /api/v1/playlists/{name}/settings - Change replay settings only."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return web.json_response(await controller.update_playlist_settings(request.match_info["name"], body))


async def rename_playlist_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playlists/{name}/rename - Rename, keeping names unique."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    if not isinstance(body, dict) or not body.get("name"):
        return create_error_response("MISSING_NAME", "'name' field is required", status=400)
    return web.json_response(await controller.rename_playlist(request.match_info["name"], body["name"]))


async def delete_playlist_handler(request: web.Request) -> web.Response:
    """DELETE /api/v1/playlists/{name} - Delete a playlist (not All)."""
    controller: APIController = request.app["controller"]
    return web.json_response(await controller.delete_playlist(request.match_info["name"]))


async def play_playlist_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playlists/{name}/play - Hand the playlist to tcpreplay."""
    controller: APIController = request.app["controller"]
    return web.json_response(await controller.play_playlist(request.match_info["name"]))
