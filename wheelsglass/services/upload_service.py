"""
services/upload_service.py — Store quote attachments on disk

Business Rules:
- At most max_upload_files files per submission
- Each file passes utils/file_validation.validate_upload before anything is written
- Stored names are "<epoch ms>-<16 hex>-<sanitized original name>"
- On any failure every file written by this call is removed

Called by: routers/quotes.py (submit-with-files)
Depends on: config, utils/file_validation.py
"""

import os
import secrets
import time
from datetime import datetime, timezone
from pathlib import Path

from fastapi import UploadFile
from loguru import logger

from ..config import settings
from ..exceptions import UploadRejected
from ..utils.file_validation import safe_filename, validate_upload


def _stored_name(original: str) -> str:
    stem = safe_filename(original)
    if "." not in stem:
        stem = f"{stem}.bin"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}-{stem}"


async def save_uploads(files: list[UploadFile], upload_dir: str | None = None) -> list[dict]:
    """Validate and write files. Returns stored metadata dicts.

    Raises UploadRejected (after cleaning up) if any file is refused.
    """
    if len(files) > settings.max_upload_files:
        raise UploadRejected(
            f"Too many files ({len(files)}); at most {settings.max_upload_files} allowed"
        )

    target = Path(upload_dir or settings.upload_dir)
    target.mkdir(parents=True, exist_ok=True)

    saved: list[dict] = []
    try:
        for f in files:
            # Read one byte past the limit so oversized files are detectable
            content = await f.read(settings.max_upload_bytes + 1)
            check = validate_upload(content, f.filename or "upload", f.content_type)
            if not check["valid"]:
                raise UploadRejected(check["reason"])

            stored = _stored_name(f.filename or "upload")
            path = target / stored
            path.write_bytes(content)
            saved.append({
                "originalName": f.filename,
                "storedName": stored,
                "mimeType": check["mime_type"],
                "size": len(content),
                "path": str(path),
                "uploadedAt": datetime.now(timezone.utc).isoformat(),
            })
    except Exception:
        cleanup_files(saved)
        raise
    return saved


def cleanup_files(saved: list[dict]) -> None:
    for info in saved:
        path = info.get("path")
        if not path:
            continue
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            logger.error("Failed to clean up upload {}: {}", path, e)
