from __future__ import annotations

from ..extensions import db
from ..enums import FileCategory, FileStorage, AccessLevel
from vbms.time_utils import to_utc_z, utcnow

class FileRecord(db.Model):
    """
    Metadata for an uploaded file. The bytes live in local disk or S3 storage.

    download_count only ever increases, through file_service.record_access().
    """
    __tablename__ = "files"
    __table_args__ = (
        db.UniqueConstraint("file_key", name="uq_files_file_key"),
        db.Index("ix_files_user_category", "user_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    original_name = db.Column(db.String(255), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_key = db.Column(db.String(512), nullable=False)
    file_url = db.Column(db.String(1024), nullable=False)
    file_size = db.Column(db.BigInteger, nullable=False)
    mime_type = db.Column(db.String(128), nullable=False)

    category = db.Column(db.String(16), nullable=False, default=FileCategory.GENERAL.value)
    storage = db.Column(db.String(8), nullable=False, default=FileStorage.LOCAL.value)
    access_level = db.Column(db.String(16), nullable=False, default=AccessLevel.PRIVATE.value)

    # {"width": ..., "height": ..., "duration": ..., "description": ..., "tags": [...]}
    metadata_json = db.Column("metadata", db.JSON, nullable=False, default=dict)

    download_count = db.Column(db.Integer, nullable=False, default=0)
    last_accessed = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    owner = db.relationship("User", backref=db.backref("files", lazy=True))

    def __repr__(self) -> str:
        return f"<FileRecord id={self.id} key={self.file_key!r}>"

    def to_dict(self) -> dict:
        from ..services.file_service import format_file_size

        return {
            "id": self.id,
            "user_id": self.user_id,
            "original_name": self.original_name,
            "file_name": self.file_name,
            "file_key": self.file_key,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "formatted_size": format_file_size(self.file_size),
            "mime_type": self.mime_type,
            "category": self.category,
            "storage": self.storage,
            "access_level": self.access_level,
            "metadata": dict(self.metadata_json or {}),
            "download_count": self.download_count,
            "last_accessed": to_utc_z(self.last_accessed),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
