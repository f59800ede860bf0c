"""JSON envelope shared by every portal endpoint.

Success: ``{status: "success", msg, data}``. Errors add ``error_code`` and
per-field ``details`` when there is something more specific than ``msg``.
Keys whose value is None are left out.
"""

from typing import Any, Dict, Iterable, Literal, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """One failed field (or other cause) of an error response"""
    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class ResponseModel(BaseModel):
    status: Literal["success", "error"]
    msg: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    details: Optional[list[ErrorDetail]] = None


def _envelope(model: ResponseModel, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json", exclude_none=True))


def success_response(msg: str = "OK", data: Any = None, status_code: int = 200) -> JSONResponse:
    return _envelope(ResponseModel(status="success", msg=msg, data=data), status_code)


def error_response(
    msg: str,
    data: Any = None,
    status_code: int = 400,
    error_code: Optional[str] = None,
    details: Optional[list[ErrorDetail]] = None,
) -> JSONResponse:
    return _envelope(
        ResponseModel(status="error", msg=msg, data=data, error_code=error_code, details=details or None),
        status_code,
    )


def _field_name(loc: Iterable[Any]) -> Optional[str]:
    parts = [str(x) for x in loc if x not in ("body", "query", "path", "form")]
    return ".".join(parts) or None


def validation_error_response(errors: list[Dict[str, Any]], status_code: int = 422) -> JSONResponse:
    """Request-schema errors raised by FastAPI before a route runs"""
    details = [
        ErrorDetail(
            field=_field_name(err.get("loc", [])),
            message=err.get("msg", "Validation error"),
            code="VALIDATION_ERROR",
        )
        for err in errors
    ]
    return error_response(
        msg="Invalid request parameters",
        details=details,
        status_code=status_code,
        error_code="VALIDATION_ERROR",
    )


def field_errors_response(
    field_errors: Dict[str, str],
    msg: str = "Please fix the errors in the form",
    data: Any = None,
    status_code: int = 422,
) -> JSONResponse:
    """Every failed form field at once"""
    details = [
        ErrorDetail(field=field, message=message, code="VALIDATION_ERROR")
        for field, message in field_errors.items()
    ]
    return error_response(
        msg=msg,
        data=data,
        details=details,
        status_code=status_code,
        error_code="VALIDATION_ERROR",
    )
