# Overview: Closed value sets for enumerated record fields.

"""
Enumerated field values.

Every enumerated column is stored as its string value, but callers go through
these classes so an out-of-set value is rejected at the boundary (validation)
instead of surfacing later as a storage error.
"""

from __future__ import annotations

from enum import Enum


class StrEnum(str, Enum):
    """String-valued enum whose members compare equal to their stored value."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value, *, field: str | None = None):
        """
        Coerce a raw value into a member.

        Raises ValueError naming the allowed values when value is not one of them.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            candidate = value.strip().lower()
            for member in cls:
                if member.value == candidate:
                    return member
        label = field or cls.__name__
        raise ValueError(f"Invalid {label} '{value}'. Must be one of: {', '.join(cls.values())}")


class UserRole(StrEnum):
    MAIN_ADMIN = "main_admin"
    ADMIN = "admin"
    CUSTOMER = "customer"


# =============================================================================
# Orders
# =============================================================================

class OrderSource(StrEnum):
    WEBSITE = "website"
    PHONE = "phone"
    UBER_EATS = "uber_eats"
    WALK_IN = "walk_in"
    CLOVER = "clover"
    MANUAL = "manual"


class OrderType(StrEnum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    DINE_IN = "dine_in"
    SERVICE = "service"


class OrderStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# =============================================================================
# Calls
# =============================================================================

class CallDirection(StrEnum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class CallPurpose(StrEnum):
    RESERVATION = "reservation"
    ORDER = "order"
    INQUIRY = "inquiry"
    COMPLAINT = "complaint"
    SUPPORT = "support"
    OTHER = "other"


class CallOutcome(StrEnum):
    ANSWERED = "answered"
    VOICEMAIL = "voicemail"
    BUSY = "busy"
    NO_ANSWER = "no_answer"
    FAILED = "failed"


class Sentiment(StrEnum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# =============================================================================
# Inventory
# =============================================================================

class StockUnit(StrEnum):
    PIECE = "piece"
    LB = "lb"
    OZ = "oz"
    KG = "kg"
    G = "g"
    BOX = "box"
    CASE = "case"
    GALLON = "gallon"
    LITER = "liter"


class InventoryStatus(StrEnum):
    ACTIVE = "active"
    DISCONTINUED = "discontinued"
    SEASONAL = "seasonal"
    OUT_OF_STOCK = "out_of_stock"


class InventoryTransactionType(StrEnum):
    ADJUSTMENT = "adjustment"
    RESERVE = "reserve"
    RELEASE = "release"
    SALE = "sale"


# =============================================================================
# Files
# =============================================================================

class FileCategory(StrEnum):
    LOGOS = "logos"
    DOCUMENTS = "documents"
    IMAGES = "images"
    VIDEOS = "videos"
    AUDIO = "audio"
    GENERAL = "general"


class FileStorage(StrEnum):
    LOCAL = "local"
    S3 = "s3"


class AccessLevel(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"
    RESTRICTED = "restricted"
