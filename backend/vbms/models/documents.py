from __future__ import annotations

from ..extensions import db
from vbms.time_utils import to_utc_z

class DocumentSequence(db.Model):
    """
    Atomic display-number sequences.

    One row per (document_type, window_key): e.g. ("ORDER", "ALL") or
    ("CALL", "20261017"). next_number is bumped with a single UPDATE so two
    concurrent creates can never read the same value.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "window_key", name="uq_doc_sequences_type_window"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    window_key = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "window_key": self.window_key,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
