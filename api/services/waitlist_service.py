"""
Waitlist Submission Service

Orchestrates a single waitlist signup:
- Configuration check (reCAPTCHA secret present)
- Client identification from X-Forwarded-For
- Throttling per client address
- Body parsing
- reCAPTCHA token presence and score verification
- Field validation
- Persistence (first submission per email wins)

Each step short-circuits by raising a WaitlistError subclass; the router
turns those into HTTP responses.
"""

import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from starlette.concurrency import run_in_threadpool

from config.waitlist_config import WaitlistConfig
from errors import (
    BotSuspectedError,
    ClientIdentificationError,
    ConfigurationError,
    DuplicateEmailError,
    FieldValidationError,
    MalformedRequestError,
    MissingTokenError,
    ThrottledError,
    UnexpectedError,
)
from services.rate_limiter import RateLimiter
from services.recaptcha import RecaptchaVerifier
from services.waitlist_store import DuplicateEmail, Inserted, StorageFailure, WaitlistStore

logger = logging.getLogger(__name__)

# Scores below this are treated as automated traffic
RECAPTCHA_SCORE_THRESHOLD = 0.4

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SUCCESS_MESSAGE = "Successfully added to waitlist!"


def parse_client_ip(forwarded_for: Optional[str]) -> Optional[str]:
    """Return the originating client address from an X-Forwarded-For value"""
    if not forwarded_for:
        return None
    first = forwarded_for.split(",")[0].strip()
    return first or None


def validate_name(name: Any) -> str:
    if not isinstance(name, str):
        raise FieldValidationError("name", "Name must be between 2 and 100 characters.")
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise FieldValidationError("name", "Name must be between 2 and 100 characters.")
    return name


def validate_email(email: Any) -> str:
    if not isinstance(email, str):
        raise FieldValidationError("email", "Please enter a valid email address.")
    if not EMAIL_PATTERN.match(email):
        raise FieldValidationError("email", "Please enter a valid email address.")
    return email


class WaitlistService:
    """Waitlist signup workflow over injected collaborators"""

    def __init__(
        self,
        config: WaitlistConfig,
        rate_limiter: RateLimiter,
        verifier: Optional[RecaptchaVerifier],
        store: WaitlistStore,
    ):
        """
        Initialize service

        Args:
            config: Waitlist configuration
            rate_limiter: Throttle backend keyed by client address
            verifier: reCAPTCHA verifier (None when no secret is configured)
            store: Waitlist persistence
        """
        self.config = config
        self.rate_limiter = rate_limiter
        self.verifier = verifier
        self.store = store

    async def submit(
        self,
        forwarded_for: Optional[str],
        body: Union[bytes, str, Callable[[], Awaitable[bytes]]],
    ) -> Dict[str, Any]:
        """
        Run one signup submission

        Args:
            forwarded_for: Raw X-Forwarded-For header value
            body: Raw request body, or a coroutine function that reads it
                (only awaited once throttling has passed)

        Returns:
            Success body: {message, name, email, id}

        Raises:
            WaitlistError: the first failing step's error
        """
        if not self.config.has_recaptcha_secret or self.verifier is None:
            logger.error("RECAPTCHA_SECRET_KEY is not set in environment variables.")
            raise ConfigurationError()

        client_ip = parse_client_ip(forwarded_for)
        if not client_ip:
            logger.warning("Could not determine IP from x-forwarded-for header.")
            raise ClientIdentificationError()

        decision = await self.rate_limiter.limit(client_ip)
        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            raise ThrottledError(limit=decision.limit, remaining=decision.remaining, reset=decision.reset)

        if callable(body):
            body = await body()
        data = self._parse_body(body, client_ip)

        token = data.get("recaptchaToken")
        if not token or not isinstance(token, str):
            logger.warning(f"reCAPTCHA token missing from {client_ip}")
            raise MissingTokenError()

        result = await self.verifier.verify(token, remote_ip=client_ip)
        if not result.success or result.score is None or result.score < RECAPTCHA_SCORE_THRESHOLD:
            logger.warning(
                f"reCAPTCHA verification failed for {client_ip}: "
                f"score={result.score} errors={result.error_codes}"
            )
            raise BotSuspectedError()

        name = validate_name(data.get("name"))
        email = validate_email(data.get("email"))

        outcome = await run_in_threadpool(self.store.add, name, email)

        if isinstance(outcome, DuplicateEmail):
            logger.warning(f"Duplicate waitlist signup for {email} from {client_ip}")
            raise DuplicateEmailError()
        if isinstance(outcome, StorageFailure):
            logger.error(f"Storage failure for {email} from {client_ip}: {outcome.detail}")
            raise UnexpectedError()
        if not isinstance(outcome, Inserted):
            raise UnexpectedError()

        logger.info(f"New waitlist signup: {email} (id={outcome.id}, score={result.score}, ip={client_ip})")
        return {
            "message": SUCCESS_MESSAGE,
            "name": outcome.name,
            "email": outcome.email,
            "id": outcome.id,
        }

    @staticmethod
    def _parse_body(body: Union[bytes, str], client_ip: str) -> Dict[str, Any]:
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            logger.warning(f"Malformed JSON body from {client_ip}")
            raise MalformedRequestError()
        if not isinstance(data, dict):
            logger.warning(f"Request body from {client_ip} is not a JSON object")
            raise MalformedRequestError()
        return data
