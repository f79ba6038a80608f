from typing import Dict, Optional


class ServiceError(RuntimeError):
    """Recoverable service error. Subclasses carry the HTTP mapping used by the blueprints."""

    status_code = 400
    code = "service_error"

    def __init__(self, message: str, *, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self) -> dict:
        payload = {"ok": False, "error": self.code, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ServiceError):
    """Missing field, invalid enum value or business-rule violation (inline form feedback)."""

    status_code = 400
    code = "validation_error"

    def __init__(self, errors, message: str = "Validation error"):
        if isinstance(errors, str):
            errors = {"__all__": errors}
        super().__init__(message, errors=errors)


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"


class Conflict(ServiceError):
    """Blocked by a reference elsewhere (referential integrity) or by the entity's state."""

    status_code = 409
    code = "conflict"


# Same failure, named after the storage concern
ReferentialIntegrityError = Conflict


class RemoteUnavailable(ServiceError):
    """Backend/network failure. Never retried here; the caller re-invokes."""

    status_code = 503
    code = "remote_unavailable"

    def __init__(self, message: str = "Operation failed, try again."):
        super().__init__(message)
