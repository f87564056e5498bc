"""
Utility values and helpers shared across the app. This includes:
- Record vocabularies: departments, public representative types, workflow statuses.
- The supported upload MIME table (icon / category / label).
- format_file_size: human-readable byte counts.
- status_class: CSS badge class for a record status.
"""

from __future__ import annotations


DEPARTMENTS = [
    "Public Representation",
    "Executive Engineer",
    "Contractor",
    "Farmer",
    "Other",
]

PUBLIC_REPRESENTATION = "Public Representation"
PUBLIC_REP_TYPES = ["MLA", "MP"]

DEFAULT_STATUS = "Pending"
RECORD_STATUSES = [
    "Pending",
    "In Progress",
    "Under Review",
    "Completed",
    "On Hold",
    "Rejected",
    "Archived",
]

SUPPORTED_FILE_TYPES = {
    "application/pdf": {"icon": "📄", "category": "document", "label": "PDF"},
    "application/msword": {"icon": "📝", "category": "document", "label": "DOC"},
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": {
        "icon": "📝",
        "category": "document",
        "label": "DOCX",
    },
    "application/vnd.ms-excel": {"icon": "📊", "category": "spreadsheet", "label": "XLS"},
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": {
        "icon": "📊",
        "category": "spreadsheet",
        "label": "XLSX",
    },
    "text/csv": {"icon": "📈", "category": "spreadsheet", "label": "CSV"},
    "image/jpeg": {"icon": "🖼️", "category": "image", "label": "JPG"},
    "image/jpg": {"icon": "🖼️", "category": "image", "label": "JPG"},
    "image/png": {"icon": "🖼️", "category": "image", "label": "PNG"},
    "image/gif": {"icon": "🖼️", "category": "image", "label": "GIF"},
    "image/bmp": {"icon": "🖼️", "category": "image", "label": "BMP"},
    "image/webp": {"icon": "🖼️", "category": "image", "label": "WebP"},
    "text/plain": {"icon": "📃", "category": "text", "label": "TXT"},
    "text/rtf": {"icon": "📃", "category": "text", "label": "RTF"},
    "application/vnd.ms-powerpoint": {"icon": "📊", "category": "presentation", "label": "PPT"},
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": {
        "icon": "📊",
        "category": "presentation",
        "label": "PPTX",
    },
    "application/zip": {"icon": "🗂️", "category": "archive", "label": "ZIP"},
    "application/x-rar-compressed": {"icon": "🗂️", "category": "archive", "label": "RAR"},
}

ACCEPTED_EXTENSIONS = ".pdf,.doc,.docx,.xls,.xlsx,.csv,.jpg,.jpeg,.png,.gif,.bmp,.webp,.txt,.rtf,.ppt,.pptx,.zip,.rar"


def file_category(mime_type: str | None) -> str:
    return SUPPORTED_FILE_TYPES.get(mime_type or "", {}).get("category", "other")


def file_icon(mime_type: str | None) -> str:
    return SUPPORTED_FILE_TYPES.get(mime_type or "", {}).get("icon", "📎")


def file_label(mime_type: str | None) -> str:
    return SUPPORTED_FILE_TYPES.get(mime_type or "", {}).get("label", "Unknown")


def format_file_size(size) -> str:
    """1536 -> "1.5 KB". Missing or zero sizes render as "0 Bytes"."""
    try:
        size = int(size or 0)
    except (TypeError, ValueError):
        size = 0
    if size <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    while size >= 1024 ** (index + 1) and index < len(units) - 1:
        index += 1
    value = round(size / (1024 ** index), 2)
    return f"{value:g} {units[index]}"


def status_class(status: str | None) -> str:
    """
    Compute CSS badge class for a record status.

    Matching is by substring so free-text legacy values still get a colour;
    anything unknown renders as pending.
    """
    s = (status or DEFAULT_STATUS).lower()
    if "pending" in s:
        return "s-pending"
    if "progress" in s:
        return "s-progress"
    if "review" in s:
        return "s-review"
    if "completed" in s:
        return "s-completed"
    if "hold" in s:
        return "s-hold"
    if "reject" in s:
        return "s-rejected"
    if "archive" in s:
        return "s-archived"
    return "s-pending"
