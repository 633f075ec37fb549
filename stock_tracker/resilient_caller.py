"""
Retrying wrapper around a single text-generation request.

Transport failures and HTTP 429 are retried with exponential backoff; any
other error status ends the call at once. The caller walks an explicit state
machine (IDLE -> ATTEMPTING(n) -> BACKOFF(n) -> ... -> DONE) and refuses a
second call while one is in flight.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

import requests
from pydantic import BaseModel

from . import settings

logger = logging.getLogger(__name__)

NO_CONTENT_TEXT = "No response could be generated."
RATE_LIMIT_STATUS = 429


class CallState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    DONE = "done"


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    SERVER_ERROR = "server_error"
    BUSY = "busy"


class CallResult(BaseModel):
    ok: bool
    text: Optional[str] = None
    failure: Optional[FailureKind] = None
    status_code: Optional[int] = None
    message: Optional[str] = None
    attempts: int = 0

    class Config:
        frozen = True


def extract_text(body) -> Optional[str]:
    """Pulls candidates[0].content.parts[0].text out of a generateContent response."""
    try:
        return body["candidates"][0]["content"]["parts"][0]["text"] or None
    except (KeyError, IndexError, TypeError):
        return None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
        return body["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.reason or f"HTTP {response.status_code}"


class ResilientCaller:
    def __init__(
        self,
        url: str = settings.GEMINI_API_URL,
        api_key: str = settings.GEMINI_API_KEY,
        session: Optional[requests.Session] = None,
        max_attempts: int = settings.MAX_ATTEMPTS,
        initial_delay_ms: int = settings.INITIAL_BACKOFF_MS,
        timeout: float = settings.REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.url = url
        self.api_key = api_key
        self.session = session or requests.Session()
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.timeout = timeout
        self._sleep = sleep
        self._lock = threading.Lock()

        self.state = CallState.IDLE
        self.attempt = 0

    @property
    def loading(self) -> bool:
        return self._lock.locked()

    def _enter(self, state: CallState, attempt: int):
        self.state = state
        self.attempt = attempt
        logger.debug(f"Caller state -> {state.value} (attempt {attempt})")

    def _backoff(self, attempt: int, delay_ms: int):
        self._enter(CallState.BACKOFF, attempt)
        logger.info(f"  > Retrying in {delay_ms} ms (attempt {attempt}/{self.max_attempts} failed).")
        self._sleep(delay_ms / 1000)

    def call(self, payload: dict) -> CallResult:
        """Posts `payload` and returns the outcome. Never raises for HTTP or transport failures."""
        if not self._lock.acquire(blocking=False):
            logger.warning("⚠️ A generation request is already in flight; ignoring new request.")
            return CallResult(ok=False, failure=FailureKind.BUSY, message="A request is already in progress.")

        try:
            return self._run(payload)
        finally:
            self._enter(CallState.DONE, self.attempt)
            self._lock.release()

    def _run(self, payload: dict) -> CallResult:
        delay_ms = self.initial_delay_ms
        params = {"key": self.api_key} if self.api_key else None

        for attempt in range(1, self.max_attempts + 1):
            self._enter(CallState.ATTEMPTING, attempt)
            is_last = attempt == self.max_attempts

            try:
                response = self.session.post(self.url, params=params, json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                logger.warning(f"⚠️ Network error calling text generation: {e}")
                if is_last:
                    return CallResult(
                        ok=False, failure=FailureKind.NETWORK, message=str(e), attempts=attempt
                    )
                self._backoff(attempt, delay_ms)
                delay_ms *= 2
                continue

            if response.ok:
                return self._success(response, attempt)

            if response.status_code == RATE_LIMIT_STATUS:
                logger.warning("⚠️ Text generation rate limited (429).")
                if is_last:
                    return CallResult(
                        ok=False,
                        failure=FailureKind.RATE_LIMITED,
                        status_code=response.status_code,
                        message=_error_message(response),
                        attempts=attempt,
                    )
                self._backoff(attempt, delay_ms)
                delay_ms *= 2
                continue

            message = _error_message(response)
            logger.error(f"❌ Text generation failed with HTTP {response.status_code}: {message}")
            return CallResult(
                ok=False,
                failure=FailureKind.SERVER_ERROR,
                status_code=response.status_code,
                message=message,
                attempts=attempt,
            )

        # Only reachable with max_attempts < 1.
        return CallResult(ok=False, failure=FailureKind.NETWORK, message="No attempts made.", attempts=0)

    def _success(self, response: requests.Response, attempt: int) -> CallResult:
        try:
            text = extract_text(response.json())
        except ValueError:
            text = None
        if text is None:
            logger.warning("⚠️ Response had no generated text; using placeholder.")
            text = NO_CONTENT_TEXT
        return CallResult(ok=True, text=text, status_code=response.status_code, attempts=attempt)
