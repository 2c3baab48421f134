"""
codedrop/core/constants.py

Application-wide fixed constants.

These are business rules that are part of the system's contract and are
NOT configurable via environment variables.
"""

import re
from datetime import timedelta

# ── Entry lifetime ─────────────────────────────────────────────────────────────

#: Every entry becomes unreachable this long after it was created.
ENTRY_TTL: timedelta = timedelta(minutes=30)

# ── Codes ──────────────────────────────────────────────────────────────────────

#: Inclusive bounds of the 4-digit code space (9000 values).
CODE_MIN: int = 1000
CODE_MAX: int = 9999

#: Shape a retrieval code must have before the store is consulted.
#: [0-9] rather than \d so non-ASCII digits are rejected.
CODE_PATTERN = re.compile(r"[0-9]{4}")

# ── Uploads ────────────────────────────────────────────────────────────────────

#: Largest accepted file attachment (16 MiB).
MAX_FILE_BYTES: int = 16 * 1024 * 1024

#: Fallbacks for attachments that arrive without a name or content type.
DEFAULT_FILE_NAME: str = "download.bin"
DEFAULT_MIME_TYPE: str = "application/octet-stream"

#: Chunk size used when streaming a stored payload back to the client.
STREAM_CHUNK_BYTES: int = 64 * 1024


def is_valid_code(code: str | None) -> bool:
    """True when ``code`` is exactly four ASCII digits."""
    return code is not None and CODE_PATTERN.fullmatch(code) is not None
