import logging
import secrets
import time
from pathlib import Path

from fastapi import UploadFile

from ..config import Settings
from ..schemas.applications import Attachment
from ..utils.error_handlers import PayloadTooLargeError, ValidationError, get_error_message
from ..utils.validation import sanitize_filename

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"

ALLOWED_PHOTO_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
ALLOWED_CV_EXTENSIONS = {".pdf"}
ALLOWED_CV_CONTENT_TYPES = {
    "application/pdf",
    "application/octet-stream",  # allow when extension is trusted
}

CHUNK_BYTES = 1024 * 1024  # 1MB


def max_bytes_for(field: str, settings: Settings) -> int:
    return settings.max_cv_bytes if field == "cv" else settings.max_photo_bytes


def check_file_type(field: str, filename: str | None, content_type: str | None) -> str:
    """Allow-list check per field. Returns the sanitized original filename."""
    if not filename:
        raise ValidationError(get_error_message(f"invalid_{field}_type"), field=field)

    try:
        name = sanitize_filename(Path(filename).name)
    except ValidationError as e:
        raise ValidationError(e.message, field=field)
    ext = Path(name).suffix.lower()
    content_type = (content_type or "").lower()

    if field == "photo":
        ok = content_type.startswith("image/") and ext in ALLOWED_PHOTO_EXTENSIONS
    elif field == "cv":
        ok = content_type in ALLOWED_CV_CONTENT_TYPES and ext in ALLOWED_CV_EXTENSIONS
    else:
        ok = False

    if not ok:
        raise ValidationError(get_error_message(f"invalid_{field}_type"), field=field)
    return name


async def read_limited(file: UploadFile, *, field: str, max_bytes: int) -> bytes:
    """Read an upload into memory, failing as soon as it passes `max_bytes`."""
    chunks: list[bytes] = []
    size = 0
    try:
        while True:
            chunk = await file.read(CHUNK_BYTES)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                raise PayloadTooLargeError(
                    f"{field} is too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
                    field=field,
                    details={"max_bytes": max_bytes},
                )
            chunks.append(chunk)
    finally:
        await file.close()
    return b"".join(chunks)


async def collect_attachments(
    uploads: dict[str, UploadFile | None],
    settings: Settings,
) -> dict[str, Attachment]:
    """
    Validate a {field: UploadFile} mapping: every type check runs before any
    size check, so a wrong-type file is reported even if another is oversized.
    """
    present = {f: u for f, u in uploads.items() if u is not None and u.filename}
    names = {f: check_file_type(f, u.filename, u.content_type) for f, u in present.items()}

    out: dict[str, Attachment] = {}
    for field, upload in present.items():
        data = await read_limited(upload, field=field, max_bytes=max_bytes_for(field, settings))
        out[field] = Attachment(
            field=field,
            filename=names[field],
            content_type=(upload.content_type or "application/octet-stream"),
            data=data,
        )
    return out


def generate_stored_name(field: str, original_filename: str) -> str:
    # <field>-<epoch ms>-<random><ext>; unique per call so concurrent uploads never collide
    ext = Path(original_filename).suffix.lower()
    return f"{field}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


def store_bytes(upload_dir: str, attachment: Attachment) -> tuple[str, Path]:
    """Write bytes under a fresh name. Returns (public path, absolute path)."""
    base_dir = Path(upload_dir)
    base_dir.mkdir(parents=True, exist_ok=True)

    stored_name = generate_stored_name(attachment.field, attachment.filename)
    dest = base_dir / stored_name
    # "xb" so a name clash fails loudly instead of overwriting
    with open(dest, "xb") as out:
        out.write(attachment.data)
    return f"{PUBLIC_PREFIX}{stored_name}", dest


def remove_stored_file(upload_dir: str, public_path: str | None) -> None:
    """Best-effort removal of a stored binary; failures are logged, not raised."""
    if not public_path or not public_path.startswith(PUBLIC_PREFIX):
        return
    dest = Path(upload_dir) / Path(public_path[len(PUBLIC_PREFIX):]).name
    try:
        dest.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove stored file {dest}: {e}")
