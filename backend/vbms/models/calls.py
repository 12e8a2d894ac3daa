from __future__ import annotations

from ..extensions import db
from ..enums import CallPurpose, CallOutcome, Sentiment, Priority
from vbms.time_utils import to_utc_z, utcnow

class Call(db.Model):
    """
    Phone call handled for a business (usually by the AI voice agent).

    call_id is the display number CALL-<YYYYMMDD>-<seq>, numbered per local
    calendar day. Everything else is payload recorded as received.
    """
    __tablename__ = "calls"
    __table_args__ = (
        db.UniqueConstraint("call_id", name="uq_calls_call_id"),
        db.Index("ix_calls_business_created", "business_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    call_id = db.Column(db.String(32), nullable=False)
    vapi_call_id = db.Column(db.String(128), nullable=True, index=True)
    phone_number = db.Column(db.String(32), nullable=False)
    direction = db.Column(db.String(16), nullable=False)
    duration_seconds = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=30)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_is_returning = db.Column(db.Boolean, nullable=False, default=False)

    purpose = db.Column(db.String(16), nullable=False, default=CallPurpose.INQUIRY.value, index=True)
    outcome = db.Column(db.String(16), nullable=False, default=CallOutcome.ANSWERED.value, index=True)

    handled_by_ai = db.Column(db.Boolean, nullable=False, default=True)
    ai_confidence = db.Column(db.Integer, nullable=True)  # 0-100
    transferred_to_human = db.Column(db.Boolean, nullable=False, default=False)
    transfer_reason = db.Column(db.String(255), nullable=True)
    satisfaction = db.Column(db.Integer, nullable=True)  # 1-5

    transcript = db.Column(db.Text, nullable=True)
    summary = db.Column(db.Text, nullable=True)
    sentiment = db.Column(db.String(16), nullable=False, default=Sentiment.NEUTRAL.value)
    keywords = db.Column(db.JSON, nullable=False, default=list)
    action_items = db.Column(db.JSON, nullable=False, default=list)

    created_order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    follow_up_required = db.Column(db.Boolean, nullable=False, default=False, index=True)
    follow_up_note = db.Column(db.String(255), nullable=True)
    priority = db.Column(db.String(16), nullable=False, default=Priority.LOW.value)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    time_zone = db.Column(db.String(64), nullable=True)
    during_business_hours = db.Column(db.Boolean, nullable=False, default=True)

    recording_url = db.Column(db.String(512), nullable=True)
    recording_duration_seconds = db.Column(db.Integer, nullable=True)
    recording_available = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    business = db.relationship("Business", backref=db.backref("calls", lazy=True))
    created_order = db.relationship("Order", foreign_keys=[created_order_pk])

    def __repr__(self) -> str:
        return f"<Call id={self.id} call_id={self.call_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "call_id": self.call_id,
            "vapi_call_id": self.vapi_call_id,
            "phone_number": self.phone_number,
            "direction": self.direction,
            "duration_seconds": self.duration_seconds,
            "cost_cents": self.cost_cents,
            "customer": {
                "name": self.customer_name,
                "phone": self.customer_phone,
                "email": self.customer_email,
                "is_returning": self.customer_is_returning,
            },
            "purpose": self.purpose,
            "outcome": self.outcome,
            "ai_handling": {
                "handled_by_ai": self.handled_by_ai,
                "confidence": self.ai_confidence,
                "transferred_to_human": self.transferred_to_human,
                "transfer_reason": self.transfer_reason,
                "satisfaction": self.satisfaction,
            },
            "conversation": {
                "transcript": self.transcript,
                "summary": self.summary,
                "sentiment": self.sentiment,
                "keywords": list(self.keywords or []),
                "action_items": list(self.action_items or []),
            },
            "business_action": {
                "created_order_id": self.created_order.order_id if self.created_order else None,
                "follow_up_required": self.follow_up_required,
                "follow_up_note": self.follow_up_note,
                "priority": self.priority,
            },
            "timing": {
                "start_time": to_utc_z(self.start_time),
                "end_time": to_utc_z(self.end_time),
                "time_zone": self.time_zone,
                "during_business_hours": self.during_business_hours,
            },
            "recording": {
                "url": self.recording_url,
                "duration_seconds": self.recording_duration_seconds,
                "available": self.recording_available,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
