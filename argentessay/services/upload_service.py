import logging
import os
import re
import secrets
import time
from datetime import datetime

from flask import current_app
from werkzeug.utils import secure_filename

from argentessay.utils.exceptions import Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

MB = 1024 * 1024

# category -> allowed extensions (None means any), per-file size, files per request
UPLOAD_RULES = {
    "cv": {"extensions": {".pdf", ".doc", ".docx"}, "max_size": 5 * MB, "max_files": 1},
    "samples": {"extensions": {".pdf", ".doc", ".docx", ".txt"}, "max_size": 10 * MB, "max_files": 5},
    "certificates": {"extensions": {".pdf", ".jpg", ".jpeg", ".png"}, "max_size": 5 * MB, "max_files": 10},
    "messages": {"extensions": None, "max_size": 10 * MB, "max_files": 5},
    "profiles": {"extensions": {".jpg", ".jpeg", ".png", ".gif"}, "max_size": 2 * MB, "max_files": 1},
}

MIMETYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".txt": "text/plain",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def upload_root():
    upload_folder = current_app.config.get("UPLOAD_FOLDER")
    if not upload_folder:
        raise RuntimeError("UPLOAD_FOLDER not configured in Flask app")
    return upload_folder


def _file_size(file):
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def stored_name(original):
    """``<basename>-<epoch ms>-<random hex><ext>`` with the basename sanitized."""
    base, ext = os.path.splitext(secure_filename(original) or "file")
    base = re.sub(r"[^a-zA-Z0-9]", "-", base) or "file"
    return f"{base}-{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext.lower()}"


def validate_upload(file, category):
    rules = UPLOAD_RULES.get(category)
    if rules is None:
        raise ValidationFailed(f"Unknown upload category '{category}'")
    if not file or not file.filename:
        raise ValidationFailed("No file provided", code="NO_FILE")

    ext = os.path.splitext(file.filename)[1].lower()
    allowed = rules["extensions"]
    if allowed is not None and ext not in allowed:
        raise ValidationFailed(
            f"File type {ext or '(none)'} is not allowed",
            details={"allowed": sorted(allowed)},
            code="FILE_TYPE_NOT_ALLOWED",
        )

    size = _file_size(file)
    if size > rules["max_size"]:
        raise ValidationFailed(
            "File size too large",
            details={"max_bytes": rules["max_size"]},
            code="FILE_TOO_LARGE",
        )
    return size


def save_uploaded_file(file, category, owner_id):
    size = validate_upload(file, category)

    relative_dir = os.path.join(category, owner_id)
    upload_path = os.path.join(upload_root(), relative_dir)
    os.makedirs(upload_path, exist_ok=True)

    name = stored_name(file.filename)
    file.save(os.path.join(upload_path, name))
    logger.info("Stored %s upload %s for %s", category, name, owner_id)

    return {
        "filename": file.filename,
        "stored_path": os.path.join(relative_dir, name).replace(os.sep, "/"),
        "size": size,
        "uploaded_at": datetime.utcnow().isoformat() + "Z",
        "verified": False,
    }


def save_uploaded_files(files, category, owner_id):
    files = [f for f in files if f and f.filename]
    if not files:
        raise ValidationFailed("No file provided", code="NO_FILE")
    max_files = UPLOAD_RULES[category]["max_files"]
    if len(files) > max_files:
        raise ValidationFailed(
            "Too many files uploaded",
            details={"max_files": max_files},
            code="TOO_MANY_FILES",
        )
    for f in files:
        validate_upload(f, category)
    return [save_uploaded_file(f, category, owner_id) for f in files]


def resolve_upload_path(relative_path):
    root = os.path.abspath(upload_root())
    safe_path = os.path.abspath(os.path.join(root, relative_path))
    if os.path.commonpath([root, safe_path]) != root:
        raise Forbidden("Invalid file path")
    if not os.path.isfile(safe_path):
        raise NotFound("File not found")
    return safe_path


def guess_mimetype(path):
    return MIMETYPES.get(os.path.splitext(path)[1].lower(), "application/octet-stream")


def delete_file(relative_path):
    path = os.path.join(upload_root(), relative_path)
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False


def discard_files(records):
    """Remove stored uploads whose owning record was never saved."""
    for record in records:
        delete_file(record["stored_path"])
    if records:
        logger.warning("Discarded %d unsaved upload(s)", len(records))


def clean_old_files(directory, days_old=30):
    """Delete regular files in ``directory`` older than ``days_old`` days.

    Returns the number of files removed. Unreadable entries are logged and
    skipped so one bad file does not stop the sweep.
    """
    if not os.path.isdir(directory):
        return 0

    cutoff = time.time() - days_old * 24 * 60 * 60
    removed = 0
    for entry in os.scandir(directory):
        try:
            if entry.is_file() and entry.stat().st_mtime < cutoff:
                os.remove(entry.path)
                removed += 1
                logger.info("Deleted old file: %s", entry.name)
        except OSError as e:
            logger.error("Error cleaning %s: %s", entry.path, e)
    return removed
