"""
Waitlist Errors

Every outcome of a waitlist submission other than success is one of these
exceptions. Each carries the HTTP status it maps to, the message shown to
the caller and the severity it is logged at.
"""

import logging
from typing import Any, Dict, Optional


class WaitlistError(Exception):
    """Base class for waitlist submission failures"""

    status_code: int = 500
    message: str = "An unexpected error occurred."
    log_level: int = logging.ERROR

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"message": self.message}


class ConfigurationError(WaitlistError):
    status_code = 500
    message = "Server configuration error."
    log_level = logging.ERROR


class ClientIdentificationError(WaitlistError):
    status_code = 400
    message = "Cannot determine IP address for rate limiting."
    log_level = logging.WARNING


class ThrottledError(WaitlistError):
    """Throttle window exhausted; carries the limiter's advisory metadata"""

    status_code = 429
    message = "Too many requests. Please try again later."
    log_level = logging.WARNING

    def __init__(self, limit: int, remaining: int, reset: int, message: Optional[str] = None):
        super().__init__(message)
        self.limit = limit
        self.remaining = remaining
        self.reset = reset

    def to_body(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "limit": self.limit,
            "remaining": self.remaining,
            "reset": self.reset,
        }


class MalformedRequestError(WaitlistError):
    status_code = 400
    message = "Invalid request format."
    log_level = logging.WARNING


class MissingTokenError(WaitlistError):
    status_code = 400
    message = "reCAPTCHA token is missing."
    log_level = logging.WARNING


class BotSuspectedError(WaitlistError):
    status_code = 403
    message = "reCAPTCHA verification failed. You might be a bot."
    log_level = logging.WARNING


class FieldValidationError(WaitlistError):
    """A submitted field failed its shape check; the message names the field"""

    status_code = 400
    log_level = logging.WARNING

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class DuplicateEmailError(WaitlistError):
    status_code = 409
    message = "This email is already on the waitlist."
    log_level = logging.WARNING


class UnexpectedError(WaitlistError):
    status_code = 500
    message = "An unexpected error occurred."
    log_level = logging.ERROR
