# Overview: Service-layer operations for file metadata; registration and access counting.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import FileRecord, User
from ..enums import FileCategory, FileStorage, AccessLevel
from ..validation import ConflictError, ValidationError, coerce_enum
from vbms.time_utils import utcnow


SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


class FileRecordError(Exception):
    """Raised for file metadata operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class FileRecordNotFoundError(FileRecordError):
    """Raised when the file record does not exist."""


def format_file_size(size: int | None) -> str:
    """Human-readable size: 0 Bytes, 512 Bytes, 1.5 KB, 2 MB, ..."""
    if not size:
        return "0 Bytes"
    value = float(size)
    i = 0
    while value >= 1024 and i < len(SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    # Trim trailing zeros: 1.50 -> 1.5, 2.00 -> 2
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[i]}"


def register_file(user_id: int, values: dict, *, now: datetime | None = None) -> FileRecord:
    """
    Store metadata for an uploaded file.

    values holds FileRecord attributes (already validated for types by the
    route); enum fields are checked here. file_key must be unique.
    """
    now = now or utcnow()
    if not db.session.get(User, user_id):
        raise ValidationError("user_id does not match a user")

    values = dict(values)
    values["category"] = coerce_enum(FileCategory, values.get("category") or FileCategory.GENERAL.value, "category")
    values["storage"] = coerce_enum(FileStorage, values.get("storage") or FileStorage.LOCAL.value, "storage")
    values["access_level"] = coerce_enum(
        AccessLevel, values.get("access_level") or AccessLevel.PRIVATE.value, "access_level"
    )
    metadata = values.pop("metadata", None) or {}
    if not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")

    record = FileRecord(
        user_id=user_id,
        metadata_json=metadata,
        download_count=0,
        last_accessed=now,
        created_at=now,
        updated_at=now,
        **values,
    )
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"file_key '{values.get('file_key')}' already exists")
    return record


def get_file(file_id: int) -> FileRecord | None:
    return db.session.get(FileRecord, file_id)


def list_files(
    *,
    user_id: int | None = None,
    category: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[FileRecord], int]:
    q = db.session.query(FileRecord)
    if user_id is not None:
        q = q.filter(FileRecord.user_id == user_id)
    if category:
        q = q.filter(FileRecord.category == coerce_enum(FileCategory, category, "category"))

    total = q.count()
    limit = max(1, min(limit, 500))
    offset = max(0, offset)
    files = q.order_by(FileRecord.created_at.desc(), FileRecord.id.desc()).offset(offset).limit(limit).all()
    return files, total


def record_access(file_id: int, *, now: datetime | None = None) -> FileRecord:
    """
    Count one download/view of a file.

    The increment is a single UPDATE (download_count = download_count + 1), so
    concurrent accesses are never lost.
    """
    now = now or utcnow()
    stmt = (
        update(FileRecord)
        .where(FileRecord.id == file_id)
        .values(download_count=FileRecord.download_count + 1, last_accessed=now)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        db.session.rollback()
        raise FileRecordNotFoundError("File not found", details={"file_id": file_id})
    db.session.commit()

    record = db.session.get(FileRecord, file_id)
    db.session.refresh(record)
    return record
