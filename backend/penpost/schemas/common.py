"""
Penpost Backend — Shared Response Schemas
===========================================

What:  Error and health payloads shared by every router, plus the helpers that
       turn pydantic validation failures into the API's ValidationError.
"""

from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from penpost.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# Request locations FastAPI prepends to error locations
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


class FieldError(BaseModel):
    field: str = Field(description="Offending field (dotted path)")
    message: str = Field(description="What is wrong with it")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        errors: Per-field problems (validation errors only)
        details: Optional extra context
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "authentication_error",
            "message": "Invalid credentials",
            "details": null,
            "request_id": "3f2a9c1b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(default=None, description="Per-field validation errors")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer checks."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Converts pydantic error dicts into [{"field", "message"}].

    Location prefixes added by FastAPI ("body", "query", ...) are dropped so
    the client sees `title` rather than `body.title`.
    """
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        message = err.get("msg", "Invalid value")
        # pydantic prefixes custom ValueError messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": ".".join(loc) or "body", "message": message})
    return formatted


def validate_input(schema: Type[ModelT], data: Any) -> ModelT:
    """
    Validates `data` against `schema`, raising the API's ValidationError.

    Already-built instances of `schema` pass straight through.
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        errors = format_validation_errors(e.errors())
        raise ValidationError(message=errors[0]["message"], errors=errors)
