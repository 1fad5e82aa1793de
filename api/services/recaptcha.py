"""
reCAPTCHA Verification Client

Verifies invisible reCAPTCHA v3 tokens against Google's siteverify API and
returns the bot score. The score threshold policy lives with the caller.
"""

import httpx
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from config.waitlist_config import RECAPTCHA_VERIFY_URL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecaptchaResult:
    success: bool
    score: Optional[float] = None
    error_codes: List[str] = field(default_factory=list)
    hostname: Optional[str] = None
    action: Optional[str] = None


class RecaptchaVerifier:
    """
    Client for the reCAPTCHA siteverify endpoint

    Uses an injected httpx.AsyncClient when one is given (shared pools,
    tests); otherwise creates and owns its own.
    """

    def __init__(
        self,
        secret_key: str,
        client: Optional[httpx.AsyncClient] = None,
        verify_url: str = RECAPTCHA_VERIFY_URL,
        timeout: float = 10.0,
    ):
        """
        Initialize verifier

        Args:
            secret_key: reCAPTCHA secret for this site
            client: Optional shared async HTTP client
            verify_url: siteverify endpoint URL
            timeout: Request timeout in seconds when creating our own client
        """
        self.secret_key = secret_key
        self.verify_url = verify_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def __repr__(self):
        return f"<RecaptchaVerifier url={self.verify_url}>"

    async def verify(self, token: str, remote_ip: Optional[str] = None) -> RecaptchaResult:
        """
        Verify a client token

        Args:
            token: Token produced by the client-side widget
            remote_ip: End user's IP address, forwarded to improve scoring

        Returns:
            RecaptchaResult with the success flag and score

        Raises:
            httpx.HTTPError: verification service unreachable or non-2xx
        """
        data = {"secret": self.secret_key, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        response = await self.client.post(self.verify_url, data=data)
        response.raise_for_status()
        payload = response.json()

        score = payload.get("score")
        result = RecaptchaResult(
            success=bool(payload.get("success", False)),
            score=float(score) if score is not None else None,
            error_codes=list(payload.get("error-codes", [])),
            hostname=payload.get("hostname"),
            action=payload.get("action"),
        )
        logger.debug(f"reCAPTCHA verification result: success={result.success} score={result.score}")
        return result

    async def aclose(self):
        """Close the HTTP client if this verifier created it"""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
