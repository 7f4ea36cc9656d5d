from typing import Optional


class QRGenError(Exception):
    """Base error carrying the HTTP status and the message shown to callers."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationError(QRGenError):
    status_code = 401
    message = "Invalid API credentials"


class ValidationError(QRGenError):
    status_code = 400
    message = "A non-empty text field is required"


class MethodNotAllowed(QRGenError):
    status_code = 405
    message = "Method not allowed"


class PlanLimitExceeded(QRGenError):
    status_code = 403
    message = "Conversion limit reached"


class RenderError(QRGenError):
    status_code = 500
    message = "Failed to generate QR code"


class PersistenceError(QRGenError):
    status_code = 500
    message = "Failed to generate QR code"
