# Overview: Service-layer operations for tenants (businesses) and their users.

from __future__ import annotations

from ..extensions import db
from ..models import Business, User
from ..enums import UserRole
from ..validation import ConflictError, ValidationError, coerce_enum


def create_business(name: str, code: str | None = None, *, email: str | None = None, phone: str | None = None) -> Business:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    code = code.strip().upper() if code else None
    if code and db.session.query(Business.id).filter_by(code=code).first():
        raise ConflictError(f"Business code '{code}' already exists")

    business = Business(name=name, code=code, email=email, phone=phone, is_active=True)
    db.session.add(business)
    db.session.commit()
    return business


def get_business(business_id: int) -> Business | None:
    return db.session.get(Business, business_id)


def require_active_business(business_id) -> Business:
    """Resolve the tenant for a request; raises ValidationError when unusable."""
    if business_id is None or business_id == "":
        raise ValidationError("business_id is required")
    try:
        business_id = int(business_id)
    except (TypeError, ValueError):
        raise ValidationError("business_id must be an integer")
    business = db.session.get(Business, business_id)
    if not business or not business.is_active:
        raise ValidationError("business_id does not match an active business")
    return business


def list_businesses(include_inactive: bool = False) -> list[Business]:
    q = db.session.query(Business)
    if not include_inactive:
        q = q.filter(Business.is_active == True)  # noqa: E712
    return q.order_by(Business.id.asc()).all()


def create_user(
    *,
    username: str,
    email: str,
    role=UserRole.CUSTOMER,
    business_id: int | None = None,
) -> User:
    """
    Create a user. Admins and customers belong to a business; main admins
    are platform-wide and must not.
    """
    role = coerce_enum(UserRole, role, "role")
    if role == UserRole.MAIN_ADMIN.value and business_id is not None:
        raise ValidationError("main_admin users cannot belong to a business")
    if role != UserRole.MAIN_ADMIN.value and business_id is None:
        raise ValidationError(f"{role} users must belong to a business")

    email = (email or "").strip().lower()
    if db.session.query(User.id).filter_by(email=email).first():
        raise ConflictError(f"User with email '{email}' already exists")

    user = User(business_id=business_id, username=username.strip(), email=email, role=role, is_active=True)
    db.session.add(user)
    db.session.commit()
    return user
