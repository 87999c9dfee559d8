"""Capture Routes - Upload, delete and download captures."""

from typing import AsyncIterator

from aiohttp import BodyPartReader, web

from ..controller import APIController, IncomingFile
from ..middleware import create_error_response, parse_json_body


UPLOAD_FIELDS = ("file[]", "file")
CHUNK_SIZE = 64 * 1024


def setup_capture_routes(app: web.Application, controller: APIController) -> None:
    """Register capture routes."""
    app.router.add_get("/api/v1/captures", list_captures_handler)
    app.router.add_post("/api/v1/captures/upload", upload_handler)
    app.router.add_post("/api/v1/captures/upload/{playlist}", upload_handler)
    app.router.add_post("/api/v1/captures/delete", delete_captures_handler)
    app.router.add_get("/api/v1/captures/{id}", download_handler)


async def _chunks(part: BodyPartReader) -> AsyncIterator[bytes]:
    while True:
        chunk = await part.read_chunk(CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


async def _file_parts(request: web.Request) -> AsyncIterator[IncomingFile]:
    reader = await request.multipart()
    while True:
        part = await reader.next()
        if part is None:
            return
        if not isinstance(part, BodyPartReader) or part.name not in UPLOAD_FIELDS or not part.filename:
            await part.release()
            continue
        yield IncomingFile(part.filename, _chunks(part))


async def list_captures_handler(request: web.Request) -> web.Response:
    """GET /api/v1/captures - The catalog in ingestion order."""
    controller: APIController = request.app["controller"]
    return web.json_response({"captures": await controller.list_captures()})


async def upload_handler(request: web.Request) -> web.Response:
    """POST /api/v1/captures/upload[/{playlist}] - Multipart ``file[]`` batch upload."""
    controller: APIController = request.app["controller"]
    if not request.content_type.startswith("multipart/"):
        return create_error_response("INVALID_BODY", "Upload must be multipart/form-data", status=400)
    target = request.match_info.get("playlist") or request.query.get("playlist")
    result = await controller.upload_captures(_file_parts(request), target)
    return web.json_response(result, status=201)


async def delete_captures_handler(request: web.Request) -> web.Response:
    """POST /api/v1/captures/delete - Delete a JSON array of capture ids."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return web.json_response(await controller.delete_captures(body))


async def download_handler(request: web.Request) -> web.StreamResponse:
    """GET /api/v1/captures/{id} - Download the backing file."""
    controller: APIController = request.app["controller"]
    path, original_name = controller.capture_file(request.match_info["id"])
    safe_name = original_name.replace('"', "")
    return web.FileResponse(path, headers={"Content-Disposition": f'attachment; filename="{safe_name}"'})
