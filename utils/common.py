"""Common utilities: upload validation, identifiers, and path management"""
import os
from pathlib import Path
from typing import Optional
from uuid import uuid4
import logging

# ⚠️ DO NOT import settings here - causes circular import with config.py
# Settings is imported lazily inside functions that need it

def _get_logger():
    """Lazy logger initialization to avoid circular import"""
    from config import settings
    return logging.getLogger(settings.LOGGER_NAME)


# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'rag_workbench.log')


# ============= Upload Validation =============

def get_file_extension(filename: str) -> str:
    """Extracts and normalizes the file extension from a filename."""
    return Path(filename).suffix[1:].lower()


def validate_uploaded_file(filename: Optional[str], content_type: Optional[str], size: int) -> None:
    """
    Validate an uploaded text document before it is decoded.

    Accepted when either the MIME type or the extension is whitelisted.
    Raises ValidationError (400) or FileTooLargeError (413).
    """
    from config import settings  # Lazy import
    from core.domain import FileTooLargeError, ValidationError

    if not filename:
        raise ValidationError("No file provided")

    mime = (content_type or "").split(";")[0].strip().lower()
    extension = get_file_extension(filename)
    if mime not in settings.ALLOWED_MIME_TYPES and extension not in settings.ALLOWED_FILE_EXTENSIONS:
        raise ValidationError(
            f"Invalid file type. Allowed: {', '.join('.' + e for e in settings.ALLOWED_FILE_EXTENSIONS)}"
        )

    if size > settings.MAX_FILE_SIZE:
        max_mb = settings.MAX_FILE_SIZE // 1024 // 1024
        raise FileTooLargeError(f"File too large. Max size: {max_mb}MB")


def decode_text_content(raw: bytes, filename: str) -> str:
    """Decode uploaded bytes as UTF-8 text, rejecting binary or empty files."""
    from core.domain import ValidationError

    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError(f"File '{filename}' is not valid UTF-8 text")

    if not content.strip():
        raise ValidationError("File is empty")

    _get_logger().debug(f"Decoded {len(content)} characters from '{filename}'")
    return content


# ============= Identifiers =============

def generate_document_id() -> str:
    return str(uuid4())
