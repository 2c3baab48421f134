"""
codedrop/api/entry_controller.py

Handles incoming requests to /api/upload-item, /api/get-item and
/api/items/{code}/raw.

This layer is responsible only for HTTP concerns:
  - Parsing the submission, which arrives either as a JSON body
    ({"text": ...}) or as multipart/form-data with a `text` field and/or a
    single `file` part, and resolving it to exactly one shape.
  - Enforcing the attachment size cap and the 4-digit code format before
    the service is invoked.
  - Encoding stored bytes for transport (data URI, or a raw download).
  - Translating service-level errors into appropriate HTTP responses.

Responses:
  200  Submission stored / entry found.
  400  Malformed request — both or neither of text and file, a malformed
       code, or an unreadable body.
  404  The code is unknown, wrong or expired. All three look the same.
  413  The attachment is larger than 16 MiB.
  500  The entry store failed.
  503  No free code is available right now; the caller may retry.
"""

import urllib.parse
from typing import Iterator, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile

from codedrop.core.constants import (
    DEFAULT_FILE_NAME,
    DEFAULT_MIME_TYPE,
    MAX_FILE_BYTES,
    STREAM_CHUNK_BYTES,
    is_valid_code,
)
from codedrop.core.exceptions import (
    AppBaseException,
    CapacityExhaustedError,
    EntryNotFoundError,
    InputError,
    PayloadTooLargeError,
    StorageUnavailableError,
)
from codedrop.core.logger import get_logger
from codedrop.models.entry_models import (
    ErrorResponse,
    FileItemResponse,
    TextItemResponse,
    TextSubmission,
    UploadResponse,
    item_response,
)
from codedrop.services.entry_service import EntryService
from codedrop.store.base import Entry, EntryShape

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Entries"])

NOT_FOUND_MESSAGE = "Item not found or expired"
INVALID_CODE_MESSAGE = "Please provide a valid 4-digit code."

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ── Helpers ────────────────────────────────────────────────────────────────────

def get_entry_service(request: Request) -> EntryService:
    """The EntryService built by the application lifespan."""
    return request.app.state.entry_service


def _err(message: str, status: int = 400, headers: dict | None = None) -> JSONResponse:
    """Return a JSON error response with the standard error shape."""
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


def _is_blank_upload(value: StarletteUploadFile) -> bool:
    # Browsers send an empty, unnamed part when no file was chosen.
    return not value.filename and not value.size


def _content_disposition(file_name: str) -> str:
    quoted = urllib.parse.quote(file_name, safe="")
    fallback = file_name.encode("latin-1", "ignore").decode("latin-1").replace('"', "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def _chunks(payload: bytes) -> Iterator[bytes]:
    view = memoryview(payload)
    for start in range(0, len(view), STREAM_CHUNK_BYTES):
        yield bytes(view[start:start + STREAM_CHUNK_BYTES])


async def _read_submission(
    request: Request,
) -> Tuple[Optional[str], Optional[StarletteUploadFile]]:
    """
    Pull the text and/or file out of the request body.

    Returns:
        (text, upload) — either may be None; an empty text counts as absent.

    Raises:
        InputError: The body could not be parsed or carried several files.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = TextSubmission.model_validate(await request.json())
        except (ValueError, ValidationError) as exc:
            raise InputError("Invalid JSON payload.") from exc
        return body.text or None, None

    try:
        form = await request.form()
    except Exception as exc:
        raise InputError("Invalid multipart/form-data payload.") from exc

    text: Optional[str] = None
    uploads = []
    for key, value in form.multi_items():
        if isinstance(value, StarletteUploadFile):
            if not _is_blank_upload(value):
                uploads.append(value)
        elif key == "text" and value:
            text = value

    if len(uploads) > 1:
        raise InputError("Only a single file can be shared per code.")

    return text, uploads[0] if uploads else None


# ── Endpoints ──────────────────────────────────────────────────────────────────

@router.post(
    "/upload-item",
    response_model=UploadResponse,
    responses={**_ERROR_RESPONSES, 413: {"model": ErrorResponse}},
    summary="Share text or a file under a new code",
)
async def upload_item(
    request: Request,
    service: EntryService = Depends(get_entry_service),
) -> JSONResponse:
    """
    Accept exactly one of:
      • A JSON body            → {"text": "hello world"}
      • A text form field      → -F "text=hello world"
      • A single file upload   → -F "file=@photo.jpg"

    Returns the 4-digit code under which the content can be fetched for
    the next 30 minutes.
    """
    # ── 1. Resolve the submission to a single shape ────────────────────────────
    try:
        text, upload = await _read_submission(request)

        if text is not None and upload is not None:
            raise InputError("Please choose either text OR a file, not both.")
        if text is None and upload is None:
            raise InputError("No text or file provided")

        data: Optional[bytes] = None
        if upload is not None:
            data = await upload.read(MAX_FILE_BYTES + 1)
            if len(data) > MAX_FILE_BYTES:
                raise PayloadTooLargeError("File exceeds the 16 MiB limit.")

    except PayloadTooLargeError as exc:
        logger.warning("Oversized upload rejected: %s", exc)
        return _err(str(exc), status=413)

    except InputError as exc:
        logger.warning("Upload rejected: %s", exc)
        return _err(str(exc))

    # ── 2. Delegate to service ─────────────────────────────────────────────────
    try:
        if upload is not None:
            entry: Entry = await service.submit_file(
                data,  # type: ignore[arg-type]
                file_name=upload.filename or DEFAULT_FILE_NAME,
                mime_type=upload.content_type or DEFAULT_MIME_TYPE,
            )
        else:
            entry = await service.submit_text(text)  # type: ignore[arg-type]

    except CapacityExhaustedError as exc:
        logger.warning("Code space exhausted: %s", exc)
        return _err("All codes are in use, please try again shortly.", status=503,
                    headers={"Retry-After": "30"})

    except StorageUnavailableError as exc:
        logger.exception("Entry store failed during upload: %s", exc)
        return _err("Server error", status=500)

    except AppBaseException as exc:
        logger.exception("Application error during upload: %s", exc)
        return _err("Server error", status=500)

    result = UploadResponse.from_entry(entry, service.store.ttl)
    return JSONResponse(status_code=200, content=result.model_dump(by_alias=True, mode="json"))


@router.get(
    "/get-item",
    response_model=TextItemResponse | FileItemResponse,
    responses=_ERROR_RESPONSES,
    summary="Fetch shared content by code",
)
async def get_item(
    code: Optional[str] = Query(default=None, description="4-digit retrieval code"),
    service: EntryService = Depends(get_entry_service),
) -> JSONResponse:
    """
    Return the text, or the file as a data URI, stored under ``code``.

    Missing, wrong and expired codes all produce the same 404.
    """
    if not is_valid_code(code):
        return _err(INVALID_CODE_MESSAGE)

    try:
        entry = await service.retrieve(code)  # type: ignore[arg-type]

    except EntryNotFoundError:
        logger.info("Lookup missed for a well-formed code.")
        return _err(NOT_FOUND_MESSAGE, status=404)

    except StorageUnavailableError as exc:
        logger.exception("Entry store failed during lookup: %s", exc)
        return _err("Server error", status=500)

    except AppBaseException as exc:
        logger.exception("Application error during lookup: %s", exc)
        return _err("Server error", status=500)

    logger.info("Served %s entry %s.", entry.shape.value, entry.code)
    return JSONResponse(
        status_code=200,
        content=item_response(entry).model_dump(by_alias=True),
    )


@router.get(
    "/items/{code}/raw",
    response_class=StreamingResponse,
    responses=_ERROR_RESPONSES,
    summary="Download shared content by code",
)
async def download_item(
    code: str,
    service: EntryService = Depends(get_entry_service),
):
    """
    Stream the stored payload as an attachment.

    File entries keep their original name and declared MIME type; text
    entries are served as UTF-8 plain text.
    """
    if not is_valid_code(code):
        return _err(INVALID_CODE_MESSAGE)

    try:
        entry = await service.retrieve(code)

    except EntryNotFoundError:
        return _err(NOT_FOUND_MESSAGE, status=404)

    except StorageUnavailableError as exc:
        logger.exception("Entry store failed during download: %s", exc)
        return _err("Server error", status=500)

    if entry.shape is EntryShape.TEXT:
        payload = entry.text.encode("utf-8")  # type: ignore[union-attr]
        media_type = "text/plain; charset=utf-8"
        file_name = f"{entry.code}.txt"
    else:
        payload = entry.data  # type: ignore[assignment]
        media_type = entry.mime_type  # type: ignore[assignment]
        file_name = entry.file_name  # type: ignore[assignment]

    return StreamingResponse(
        _chunks(payload),
        media_type=media_type,
        headers={
            "Content-Disposition": _content_disposition(file_name),
            "Content-Length": str(len(payload)),
            "Cache-Control": "no-store",
        },
    )
