"""Error taxonomy shared by the backend client, the flows and the portal routes."""

from __future__ import annotations

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for every error raised by the portal core."""


class BackendError(PortalError):
    """The backend answered with a non-2xx status or an error envelope."""

    def __init__(self, message: str, status_code: int = 502, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class MissingCredentials(PortalError):
    """An authenticated call was attempted without a stored token."""

    def __init__(self, message: str = "No authentication token found. Please login."):
        super().__init__(message)
        self.message = message


class AuthenticationExpired(PortalError):
    """The backend rejected the stored token (HTTP 401)."""

    def __init__(self, redirect_to: Optional[str] = None,
                 message: str = "Session expired. Please login again."):
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to


class PaymentSessionNotFound(PortalError):
    def __init__(self, order_id: str, message: str = "Payment not found"):
        super().__init__(f"{message}: {order_id}")
        self.order_id = order_id
        self.message = message


class FormValidationError(PortalError):
    """All failed fields of a form, reported together."""

    def __init__(self, field_errors: Dict[str, str], message: str = "Please fix the errors in the form"):
        super().__init__(message)
        self.message = message
        self.field_errors = dict(field_errors)
