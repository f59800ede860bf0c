"""Client-side form validation.

Every field is checked before anything is submitted and all failures are
reported together, keyed by the form field name the frontend renders.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from gym_portal.core.config import settings
from gym_portal.core.exceptions import FormValidationError
from gym_portal.schemas.auth import PasswordReset
from gym_portal.schemas.members import PhotoUpload, RegistrationForm, RenewalSubmission

ModelT = TypeVar("ModelT", bound=BaseModel)

FIELD_NAMES = {
    "payment_method": "paymentMethod",
    "confirm_password": "confirmPassword",
}


def _error_message(err: Mapping[str, Any]) -> str:
    # ValueErrors raised in validators carry the user-facing message verbatim
    if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
        return str(err["ctx"]["error"])
    return err.get("msg", "Invalid value")


def collect_field_errors(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic ValidationError into ``field -> first message``."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = FIELD_NAMES.get(loc[0], loc[0]) if loc else "form"
        errors.setdefault(field, _error_message(err))
    return errors


def _validate(model: Type[ModelT], data: Mapping[str, Any], errors: dict[str, str]) -> Optional[ModelT]:
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        errors.update(collect_field_errors(exc))
        return None


def _check_photo(photo: Optional[PhotoUpload], *, required: bool, max_mb: int, errors: dict[str, str]) -> None:
    if photo is None:
        if required:
            errors["photo"] = "Please upload a photo"
        return
    problem = photo.problem(max_mb)
    if problem:
        errors["photo"] = problem


def validate_registration(data: Mapping[str, Any], photo: Optional[PhotoUpload]) -> RegistrationForm:
    """Validate the registration form; photo is required and capped at the registration limit."""
    errors: dict[str, str] = {}
    form = _validate(RegistrationForm, data, errors)
    _check_photo(photo, required=True, max_mb=settings.REGISTRATION_PHOTO_MAX_MB, errors=errors)
    if errors or form is None:
        raise FormValidationError(errors)
    return form


def validate_renewal(data: Mapping[str, Any], photo: Optional[PhotoUpload] = None) -> RenewalSubmission:
    """Validate a renewal; an updated photo is optional."""
    errors: dict[str, str] = {}
    submission = _validate(RenewalSubmission, data, errors)
    _check_photo(photo, required=False, max_mb=settings.RENEWAL_PHOTO_MAX_MB, errors=errors)
    if errors or submission is None:
        raise FormValidationError(errors)
    return submission


def validate_password_reset(password: str, confirm_password: str) -> PasswordReset:
    errors: dict[str, str] = {}
    reset = _validate(PasswordReset, {"password": password, "confirm_password": confirm_password}, errors)
    if errors or reset is None:
        raise FormValidationError(errors, message=next(iter(errors.values()), "Invalid password"))
    return reset
