from __future__ import annotations

from datetime import datetime
from enum import Enum


class ContentFormat(str, Enum):
    MARKDOWN = "markdown"
    HIGHLIGHTED_MARKDOWN = "highlightedMarkdown"
    ORIGINAL_HTML = "originalHtml"
    READABLE_HTML = "readableHtml"


def upload_file_path(owner_id: str, file_name: str) -> str:
    return f"u/{owner_id}/{file_name}"


def content_file_path(
    owner_id: str,
    item_id: str,
    format: ContentFormat | str,
    saved_at: datetime | None = None,
    updated_at: datetime | None = None,
) -> str:
    """Build the storage path for exported item content.

    Highlighted markdown changes whenever highlights do, so it is keyed on
    ``updated_at``; every other format is keyed on ``saved_at``. The
    timestamp is encoded as epoch milliseconds.
    """
    format = ContentFormat(format)
    date = updated_at if format == ContentFormat.HIGHLIGHTED_MARKDOWN else saved_at
    if date is None:
        raise ValueError(f"A timestamp is required to build a {format.value} content path")

    epoch_ms = int(date.timestamp() * 1000)
    return f"content/{owner_id}/{item_id}.{epoch_ms}.{format.value}"
