# gym_portal/schemas/members.py
import math
import re
from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gym_portal.core.plans import plan_period
from gym_portal.utils.datetime_utils import get_current_utc_datetime, parse_iso_datetime
from gym_portal.utils.enums import (
    PaymentMethod,
    PaymentStatus,
    PlanId,
    SubscriptionStatus,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9]{10}$")
ALLOWED_PHOTO_TYPES = frozenset({"image/jpeg", "image/png"})


def _normalize_email_value(email: str | None) -> str:
    """Normalize user-provided email strings before pattern checks."""
    if email is None:
        raise ValueError("Email is required")
    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("Email is required")
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Please enter a valid email address")
    return normalized


def _validate_phone_value(phone: str | None) -> str:
    value = (phone or "").strip()
    if not value:
        raise ValueError("Phone number is required")
    if not PHONE_PATTERN.match(value):
        raise ValueError("Please enter a valid 10-digit phone number")
    return value


def _validate_name_value(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        raise ValueError("Name is required")
    if len(value) < 3:
        raise ValueError("Name must be at least 3 characters")
    return value


def _parse_plan(value):
    try:
        return PlanId(value)
    except ValueError:
        raise ValueError("Please select a valid plan")


def _parse_payment_method(value):
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValueError("Payment method must be 'cash' or 'online'")


class PhotoUpload(BaseModel):
    """An in-memory member photo ready for multipart submission."""
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    def problem(self, max_mb: int) -> Optional[str]:
        """Return the user-facing reason this photo is rejected, if any."""
        if self.content_type not in ALLOWED_PHOTO_TYPES:
            return "Photo must be a JPEG or PNG image"
        if self.size > max_mb * 1024 * 1024:
            return f"Photo size should be less than {max_mb}MB"
        return None


# Registration
class RegistrationForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    name: str = ""
    email: str = ""
    phone: str = ""
    dob: str = ""
    plan: PlanId = PlanId.one_month
    payment_method: PaymentMethod = PaymentMethod.online

    @field_validator("name", mode="before")
    def validate_name(cls, value):
        return _validate_name_value(value)

    @field_validator("email", mode="before")
    def normalize_email(cls, value):
        return _normalize_email_value(value)

    @field_validator("phone", mode="before")
    def validate_phone(cls, value):
        return _validate_phone_value(value)

    @field_validator("dob", mode="before")
    def validate_dob(cls, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Date of birth is required")
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValueError("Please enter a valid date of birth")
        return value

    @field_validator("plan", mode="before")
    def validate_plan(cls, value):
        return _parse_plan(value)

    @field_validator("payment_method", mode="before")
    def validate_payment_method(cls, value):
        return _parse_payment_method(value)

    def to_form_fields(self, today: date) -> dict[str, str]:
        """Multipart text fields as the backend's register endpoint reads them."""
        start, end = plan_period(self.plan, today)
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "dob": self.dob,
            "plan": self.plan.value,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "paymentMethod": self.payment_method.value,
        }


# Renewal
class RenewalSubmission(BaseModel):
    """Renewal submitted against a renewal token (plan, period, payment method)."""
    plan: PlanId = PlanId.one_month
    payment_method: PaymentMethod = PaymentMethod.online

    @field_validator("plan", mode="before")
    def validate_plan(cls, value):
        return _parse_plan(value)

    @field_validator("payment_method", mode="before")
    def validate_payment_method(cls, value):
        return _parse_payment_method(value)

    def to_payload(self, today: date) -> dict[str, str]:
        start, end = plan_period(self.plan, today)
        return {
            "plan": self.plan.value,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "paymentMethod": self.payment_method.value,
        }


class RenewalRequest(BaseModel):
    """Renewal request awaiting admin approval."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    plan: PlanId
    payment_method: PaymentMethod = PaymentMethod.cash
    amount: int


class MemberUpdate(BaseModel):
    """Admin edit of a member record; only provided fields are sent."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    plan: Optional[PlanId] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("name", mode="before")
    def validate_name(cls, value):
        return None if value is None else _validate_name_value(value)

    @field_validator("email", mode="before")
    def normalize_email(cls, value):
        return None if value is None else _normalize_email_value(value)

    @field_validator("phone", mode="before")
    def validate_phone(cls, value):
        return None if value is None else _validate_phone_value(value)


# Member as returned by the backend
class Member(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    photo: Optional[str] = None
    dob: Optional[str] = None
    plan: Optional[PlanId] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus = PaymentStatus.pending
    subscription_status: Optional[SubscriptionStatus] = None

    @field_validator("start_date", "end_date", mode="before")
    def parse_dates(cls, value):
        if value in (None, ""):
            return None
        return parse_iso_datetime(value)

    @property
    def member_id(self) -> Optional[str]:
        return self.id or self.user_id

    def is_expired(self, now: datetime | None = None) -> bool:
        """A membership is expired once the current time passes its end date."""
        if self.end_date is None:
            return False
        return (now or get_current_utc_datetime()) > self.end_date

    def days_left(self, now: datetime | None = None) -> Optional[int]:
        if self.end_date is None:
            return None
        remaining = self.end_date - (now or get_current_utc_datetime())
        return math.ceil(remaining / timedelta(days=1))

    def derived_status(self, now: datetime | None = None) -> SubscriptionStatus:
        if self.is_expired(now):
            return SubscriptionStatus.expired
        if self.payment_status == PaymentStatus.pending:
            return SubscriptionStatus.pending
        return SubscriptionStatus.active
