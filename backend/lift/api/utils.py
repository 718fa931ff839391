import asyncio
import json
import logging
from typing import Awaitable, Optional, TypeVar

from fastapi import HTTPException, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from lift.api.schemas import NotesRequest
from lift.bot import UploadedDocument
from lift import config
from lift.config import DISCONNECT_POLL_SECONDS
from lift.utils.documents import check_upload_size

logger = logging.getLogger("lift.api.utils")

T = TypeVar("T")

CLIENT_CLOSED_REQUEST = 499
FILE_FIELDS = ("file", "files")


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


async def read_json_body(request: Request) -> dict:
    """Return the JSON object body or raise a 400."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be valid JSON.")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")
    return body


async def read_notes_input(request: Request) -> tuple[Optional[str], list[UploadedDocument]]:
    """Accept either ``{"notes": ...}`` JSON or a multipart form with ``notes`` and ``file`` parts."""
    media_type = _media_type(request)
    if media_type == "application/json":
        try:
            payload = NotesRequest.model_validate(await read_json_body(request))
        except PydanticValidationError:
            raise HTTPException(status_code=400, detail="'notes' must be a string.")
        return payload.notes, []

    if media_type in ("multipart/form-data", "application/x-www-form-urlencoded"):
        form = await request.form()
        notes = form.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise HTTPException(status_code=400, detail="'notes' must be a text field.")
        documents: list[UploadedDocument] = []
        for key in FILE_FIELDS:
            for upload in form.getlist(key):
                if not isinstance(upload, UploadFile):
                    continue
                if upload.size is not None:
                    check_upload_size(upload.size)
                # Bounded read; anything past the limit is rejected during extraction
                contents = await upload.read(config.MAX_UPLOAD_BYTES + 1)
                # Browsers send an empty, unnamed part when no file was chosen
                if not contents and not upload.filename:
                    continue
                logger.info("Received upload filename=%s type=%s size=%d bytes", upload.filename, upload.content_type, len(contents))
                documents.append(UploadedDocument(
                    content=contents,
                    content_type=upload.content_type or "",
                    filename=upload.filename or "",
                ))
        return notes, documents

    raise HTTPException(status_code=400, detail="Send notes as JSON or as a multipart form.")


async def run_until_disconnect(request: Request, work: Awaitable[T], poll: float = DISCONNECT_POLL_SECONDS) -> T:
    """Await ``work`` but cancel it, abandoning upstream calls, if the client goes away."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("Client disconnected; cancelling in-flight generation")
                task.cancel()
                raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request.")
    finally:
        if not task.done():
            task.cancel()
