"""Domain error taxonomy shared by the services.

Services raise these instead of ``HTTPException`` so the same code runs from
routers, ARQ tasks and tests. ``libs.common.error_handler`` maps them onto HTTP
responses using ``status_code`` and the stable ``code`` string.
"""

from typing import Any, Optional


class DomainError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "Internal error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.message
        if code:
            self.code = code
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"
    message = "Invalid request"


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"
    message = "Resource not found"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"
    message = "Request conflicts with the current state"


class UnprocessableError(DomainError):
    status_code = 422
    code = "unprocessable"
    message = "Request cannot be applied"


class InternalError(DomainError):
    status_code = 500
    code = "internal_error"
    message = "Internal error"
