"""
Waitlist Form State Machine

Client-side submission flow for the waitlist form:

    idle -> submitting -> success | error

The anti-bot challenge is reached through a TokenProvider capability, so the
state machine does not depend on a particular widget. A fresh submit from
success or error starts over with the error cleared.
"""

import enum
import logging
from typing import Optional, Protocol

import httpx

from schemas.waitlist import WaitlistSubmission

logger = logging.getLogger(__name__)

TOKEN_FAILURE_MESSAGE = "reCAPTCHA verification failed. Please try again or disable ad blockers."
CONNECTION_FAILURE_MESSAGE = "Could not connect to the server. Please check your internet connection."
SUCCESS_MESSAGE = "Thanks for your interest! We will be in touch."

# Shown when the server response carries no message of its own
FALLBACK_MESSAGES = {
    400: "Validation error. Please check your inputs.",
    403: "reCAPTCHA verification failed. Are you a bot?",
    429: "Too many requests. Please try again later.",
}
GENERIC_FALLBACK_MESSAGE = "An unexpected server error occurred."


class FormState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


class TokenProvider(Protocol):
    """Invisible challenge widget: produces one token per attempt"""

    async def request_token(self) -> Optional[str]:
        ...

    def reset(self) -> None:
        ...


class WaitlistForm:
    """Form fields plus the submission state machine"""

    def __init__(
        self,
        token_provider: TokenProvider,
        http_client: httpx.AsyncClient,
        endpoint: str = "/api/waitlist",
    ):
        self.token_provider = token_provider
        self.http_client = http_client
        self.endpoint = endpoint

        self.name = ""
        self.email = ""
        self.state = FormState.IDLE
        self.error: Optional[str] = None

    @property
    def is_submit_enabled(self) -> bool:
        return self.state is not FormState.SUBMITTING

    @property
    def submitted(self) -> bool:
        return self.state is FormState.SUCCESS

    @property
    def status_message(self) -> Optional[str]:
        """Text shown above the form for the current state"""
        if self.state is FormState.SUBMITTING:
            return "Submitting..."
        if self.state is FormState.SUCCESS:
            return SUCCESS_MESSAGE
        if self.state is FormState.ERROR:
            return f"Error: {self.error}"
        return None

    def _fail(self, message: str) -> FormState:
        self.error = message
        self.state = FormState.ERROR
        return self.state

    async def submit(self) -> FormState:
        """Run one submission attempt and return the resulting state"""
        if self.state is FormState.SUBMITTING:
            return self.state

        self.error = None
        self.state = FormState.SUBMITTING

        try:
            try:
                token = await self.token_provider.request_token()
            except Exception as e:
                logger.warning(f"reCAPTCHA challenge failed: {e}")
                token = None
            if not token:
                return self._fail(TOKEN_FAILURE_MESSAGE)

            payload = WaitlistSubmission(name=self.name, email=self.email, recaptcha_token=token)
            try:
                response = await self.http_client.post(
                    self.endpoint,
                    json=payload.model_dump(by_alias=True),
                )
            except httpx.TransportError as e:
                logger.error(f"Network error during waitlist submission: {e}")
                return self._fail(CONNECTION_FAILURE_MESSAGE)

            if response.status_code == 200:
                self.state = FormState.SUCCESS
                self.name = ""
                self.email = ""
                return self.state

            message = self._server_message(response)
            logger.info(f"Waitlist submission failed with {response.status_code}: {message}")
            return self._fail(
                message or FALLBACK_MESSAGES.get(response.status_code, GENERIC_FALLBACK_MESSAGE)
            )
        finally:
            # A fresh token is needed for the next attempt
            self.token_provider.reset()

    @staticmethod
    def _server_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            message = body.get("message")
            if isinstance(message, str) and message:
                return message
        return None
