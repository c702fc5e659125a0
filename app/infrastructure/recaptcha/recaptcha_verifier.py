from __future__ import annotations

import logging

import httpx

from app.application.exceptions import BotVerificationError
from app.application.ports.bot_verifier import BotVerifierPort
from app.core.config import settings


class RecaptchaVerifier(BotVerifierPort):
    def __init__(
        self,
        secret: str | None = None,
        verify_url: str | None = None,
        min_score: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._secret = secret or settings.RECAPTCHA_SECRET
        self._verify_url = verify_url or settings.RECAPTCHA_VERIFY_URL
        self._min_score = settings.RECAPTCHA_MIN_SCORE if min_score is None else min_score
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

        if not self._secret:
            raise ValueError("RECAPTCHA_SECRET is required for reCAPTCHA verification")

    def verify(self, token: str) -> bool:
        if not token:
            return False
        try:
            response = self._client.post(self._verify_url, data={"secret": self._secret, "response": token})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self._logger.error("reCAPTCHA verification failed", extra={"error": str(e)})
            raise BotVerificationError(str(e)) from e

        score = data.get("score", 0) or 0
        passed = bool(data.get("success")) and score > self._min_score
        if not passed:
            self._logger.info("reCAPTCHA rejected", extra={"reason": ",".join(data.get("error-codes", []) or [])})
        return passed
