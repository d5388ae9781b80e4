import base64
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.exceptions.exceptions import InvalidCursorError
from app.utils.timeutil import format_instant, parse_instant


@dataclass(frozen=True)
class Cursor:
    """Position in the canonical order: the last entry a page returned.

    `entry_id` is None only for cursors issued before the tie-break was
    added; those filter on `added_at` alone and can skip entries that share
    the cursor's timestamp.
    """
    added_at: datetime
    entry_id: Optional[int] = None


def encode_cursor(cursor: Cursor) -> str:
    payload = {"added_at": format_instant(cursor.added_at)}
    if cursor.entry_id is not None:
        payload["id"] = str(cursor.entry_id)
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_cursor(token: str) -> Cursor:
    """Reverse `encode_cursor`; anything malformed raises InvalidCursorError."""
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        # binascii.Error, UnicodeError and JSONDecodeError are all ValueErrors
        raise InvalidCursorError(token, "cursor is not base64-encoded JSON") from e

    if not isinstance(payload, dict):
        raise InvalidCursorError(token, "cursor payload must be an object")

    added_at = payload.get("added_at")
    if not isinstance(added_at, str) or not added_at:
        raise InvalidCursorError(token, "cursor is missing added_at")
    try:
        cursor_date = parse_instant(added_at)
    except ValueError as e:
        raise InvalidCursorError(token, "cursor added_at is not a valid timestamp") from e

    entry_id = payload.get("id")
    if entry_id is None:
        return Cursor(added_at=cursor_date)
    if not isinstance(entry_id, str) or not (entry_id.isascii() and entry_id.isdigit()):
        raise InvalidCursorError(token, "cursor id is not a valid entry id")
    return Cursor(added_at=cursor_date, entry_id=int(entry_id))
