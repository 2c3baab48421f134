"""
codedrop/models/entry_models.py

Pydantic DTOs for the submission and retrieval flows.

Field names follow the browser client's camelCase wire format via aliases;
controllers serialise with ``model_dump(by_alias=True)``.

The upload request has no DTO for multipart bodies — the controller reads
the form natively — only the JSON text body is modelled here.
"""

import base64
from datetime import datetime, timedelta
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from codedrop.store.base import Entry, EntryShape


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TextSubmission(BaseModel):
    """
    JSON body for POST /api/upload-item.

        { "text": "hello world" }
    """

    text: Optional[str] = None


class UploadResponse(_WireModel):
    """
    Successful response for POST /api/upload-item.

        { "success": true, "code": "4821", "expiresAt": "2026-10-19T12:30:00+00:00" }
    """

    success: bool = True
    code: str
    expires_at: datetime = Field(alias="expiresAt")

    @classmethod
    def from_entry(cls, entry: Entry, ttl: timedelta) -> "UploadResponse":
        return cls(code=entry.code, expires_at=entry.expires_at(ttl))


class TextItemResponse(_WireModel):
    """
    Successful response for GET /api/get-item on a text entry.

        { "success": true, "itemType": "text", "content": "hello world" }
    """

    success: bool = True
    item_type: Literal["text"] = Field(default="text", alias="itemType")
    content: str


class FileItemResponse(_WireModel):
    """
    Successful response for GET /api/get-item on a file entry.

    The payload travels as a data URI so the browser can hand it straight to
    a download link:

        {
            "success": true,
            "itemType": "file",
            "fileName": "a.bin",
            "mimeType": "application/octet-stream",
            "fileUrl": "data:application/octet-stream;base64,AAEC..."
        }
    """

    success: bool = True
    item_type: Literal["file"] = Field(default="file", alias="itemType")
    file_name: str = Field(alias="fileName")
    mime_type: str = Field(alias="mimeType")
    file_url: str = Field(alias="fileUrl")


class ErrorResponse(BaseModel):
    """Error shape shared by every endpoint: { "success": false, "error": "..." }"""

    success: bool = False
    error: str


def to_data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def item_response(entry: Entry) -> TextItemResponse | FileItemResponse:
    """Map a stored entry to the retrieval response for its shape."""
    if entry.shape is EntryShape.TEXT:
        return TextItemResponse(content=entry.text)
    return FileItemResponse(
        file_name=entry.file_name,
        mime_type=entry.mime_type,
        file_url=to_data_uri(entry.mime_type, entry.data),
    )
