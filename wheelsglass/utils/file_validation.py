"""File validation — type and size checks for quote photo/document uploads.

Uses the `filetype` library for magic-byte validation (don't trust the
declared content type alone). Formats filetype cannot recognise (legacy
.doc, some HEIF variants) fall back to the declared type, which must still
be on the allow-list.
"""

import logging
import re

import filetype as ft

from ..config import settings

log = logging.getLogger("wheelsglass.file_validation")

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
    "image/heif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Sniffed types that are acceptable containers for a declared type
_CONTAINER_ALIASES = {
    DOCX: {"application/zip"},
    "image/heic": {"image/heif"},
    "image/heif": {"image/heic"},
}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def is_allowed_mime(mime: str | None) -> bool:
    return bool(mime) and mime.lower() in ALLOWED_MIME_TYPES


def validate_upload(content: bytes, filename: str, declared_type: str | None) -> dict:
    """Validate one uploaded file.

    Returns:
        {
            "valid": bool,
            "mime_type": str | None,   # The type to store
            "reason": str | None,      # Why invalid
            "size": int,
        }
    """
    size = len(content)
    result = {"valid": False, "mime_type": None, "reason": None, "size": size}
    declared = (declared_type or "").split(";")[0].strip().lower()

    if size == 0:
        result["reason"] = f"{filename}: empty file"
        return result
    if size > settings.max_upload_bytes:
        result["reason"] = (
            f"{filename}: file too large ({size} bytes, max {settings.max_upload_bytes})"
        )
        return result
    if not is_allowed_mime(declared):
        result["reason"] = (
            f"{filename}: file type {declared or 'unknown'} is not allowed. "
            "Allowed types: images, PDF, Word documents."
        )
        return result

    kind = ft.guess(content)
    if kind is not None and kind.mime != declared:
        if kind.mime in ALLOWED_MIME_TYPES:
            # Declared type was wrong but the content is still acceptable
            log.debug("Upload %s declared %s, detected %s", filename, declared, kind.mime)
            declared = kind.mime
        elif kind.mime not in _CONTAINER_ALIASES.get(declared, ()):
            result["reason"] = f"{filename}: claims to be {declared} but detected as {kind.mime}"
            return result

    result["valid"] = True
    result["mime_type"] = declared
    return result


def validate_declared_file(meta: dict) -> str | None:
    """Check client-reported file metadata ({name, size, type}).

    Returns an error message or None. Used for the JSON-only submit path,
    where the browser reports what it will upload separately.
    """
    name = meta.get("name") or "file"
    if not is_allowed_mime(meta.get("type")):
        return f"{name}: file type {meta.get('type') or 'unknown'} is not allowed"
    size = meta.get("size") or 0
    if size > settings.max_upload_bytes:
        return f"{name}: file too large (max {settings.max_upload_size_mb} MB)"
    return None


def safe_filename(filename: str, limit: int = 50) -> str:
    """Replace anything outside [a-zA-Z0-9.-] with '_' and truncate."""
    name = _UNSAFE_CHARS.sub("_", filename or "upload")
    return name[:limit] or "upload"
