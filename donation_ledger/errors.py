"""Error taxonomy for the donation ledger.

Every error carries a stable code and the HTTP status the API maps it to.
Messages on UnexpectedError are generic; details go to the log only.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    def __init__(self, message: str, code: str, http_status: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def to_response(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(LedgerError):
    """Malformed or out-of-range input. Never mutates state."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "VALIDATION_ERROR", 400)
        self.field = field

    def to_response(self) -> dict:
        body = super().to_response()
        if self.field:
            body["error"]["field"] = self.field
        return body


class NotFoundError(LedgerError):
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} '{resource_id}' not found", "NOT_FOUND", 404)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(LedgerError):
    """Unique-constraint violation at the account directory boundary."""

    def __init__(self, field: str, value: str):
        super().__init__(f"{field} '{value}' is already taken", "CONFLICT", 409)
        self.field = field

    def to_response(self) -> dict:
        body = super().to_response()
        body["error"]["field"] = self.field
        return body


class InvalidStateTransitionError(LedgerError):
    def __init__(self, donation_id: str, current_status: str, requested: str):
        super().__init__(
            f"Donation '{donation_id}' is already {current_status}; cannot mark it {requested}",
            "INVALID_STATE_TRANSITION",
            409,
        )
        self.donation_id = donation_id
        self.current_status = current_status
        self.requested = requested


class UnexpectedError(LedgerError):
    """Store or transport failure. Safe for the caller to retry."""

    def __init__(self):
        super().__init__("An unexpected error occurred", "UNEXPECTED_ERROR", 500)
