from typing import Any, Dict, List, Optional


class WellnessError(Exception):
    """Base error carrying a machine-readable reason and an HTTP status."""

    reason = "server_error"
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "reason": self.reason}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(WellnessError):
    reason = "validation_error"
    status_code = 400


class Unauthorized(WellnessError):
    reason = "unauthorized"
    status_code = 401


class Forbidden(WellnessError):
    reason = "forbidden"
    status_code = 403


class NotFound(WellnessError):
    reason = "not_found"
    status_code = 404


class DuplicateEntry(WellnessError):
    reason = "duplicate_entry"
    status_code = 409


class StorageFailure(WellnessError):
    reason = "storage_failure"
    status_code = 500

