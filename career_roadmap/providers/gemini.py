from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Union

import httpx

from career_roadmap.config import Config

logger = logging.getLogger(__name__)

# Gemini Developer API (AI Studio) REST base
DEFAULT_GEMINI_BASE = "https://generativelanguage.googleapis.com"

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class GeminiSettings:
    api_key: str = ""
    model: str = "gemini-2.5-flash-preview-09-2025"
    base_url: str = DEFAULT_GEMINI_BASE
    timeout: float = 90.0
    max_attempts: int = 5
    backoff_base: float = 1.0

    @classmethod
    def from_config(cls) -> "GeminiSettings":
        return cls(
            api_key=(Config.GEMINI_API_KEY or "").strip(),
            model=Config.GEMINI_MODEL.strip(),
            base_url=Config.GEMINI_BASE_URL.rstrip("/"),
            timeout=Config.GEMINI_TIMEOUT_SECONDS,
            max_attempts=Config.GEMINI_MAX_ATTEMPTS,
            backoff_base=Config.GEMINI_BACKOFF_BASE_SECONDS,
        )


@dataclass(frozen=True)
class GenerationFailure:
    """Returned instead of text when a generation could not be completed.

    kind is "transport" when every attempt failed at the HTTP level, and
    "empty_response" when the endpoint answered but carried no text.
    """
    kind: Literal["transport", "empty_response"]
    detail: str
    attempts: int


GenerationResult = Union[str, GenerationFailure]


class EmptyResponseError(ValueError):
    """Successful response without an extractable text payload."""


def extract_text(data: Any) -> str:
    """Strict decode of candidates[0].content.parts[0].text."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise EmptyResponseError(f"no text in response: {e!r}") from e
    if not isinstance(text, str):
        raise EmptyResponseError(f"text payload is {type(text).__name__}, not str")
    if not text.strip():
        raise EmptyResponseError("text payload is blank")
    return text


def backoff_delay(attempt: int, base: float = 1.0) -> float:
    """Delay before attempt number `attempt` (1-based); the first attempt has none."""
    if attempt <= 1:
        return 0.0
    return base * (2 ** (attempt - 1))


class GeminiClient:
    """Calls the Gemini generateContent endpoint with bounded exponential backoff.

    The client holds no conversation state; every call is independent and
    calls may run concurrently.
    """

    def __init__(self, settings: GeminiSettings, http: httpx.AsyncClient, sleep: Optional[SleepFn] = None):
        self.settings = settings
        self.http = http
        self._sleep = sleep or asyncio.sleep

    @property
    def url(self) -> str:
        # Gemini REST: POST /v1beta/models/{model}:generateContent
        return f"{self.settings.base_url}/v1beta/models/{self.settings.model}:generateContent"

    def build_body(self, prompt: str, system_instruction: Optional[str] = None,
                   structured_output: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "contents": [
                {"role": "user", "parts": [{"text": prompt}]}
            ]
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if structured_output:
            body["generationConfig"] = {"responseMimeType": "application/json"}
        return body

    async def _post(self, body: Dict[str, Any]) -> Any:
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.settings.api_key,
        }
        r = await self.http.post(self.url, json=body, headers=headers, timeout=self.settings.timeout)
        r.raise_for_status()
        return r.json()

    async def generate(self, prompt: str, system_instruction: Optional[str] = None,
                       structured_output: bool = False) -> GenerationResult:
        """Run one logical generation.

        Args:
            prompt: User prompt text
            system_instruction: Optional system instruction
            structured_output: Ask the endpoint for a JSON response

        Returns:
            The response text, or a GenerationFailure. Never raises for
            transport problems.
        """
        body = self.build_body(prompt, system_instruction, structured_output)
        max_attempts = max(1, self.settings.max_attempts)
        last_error = ""

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                await self._sleep(backoff_delay(attempt, self.settings.backoff_base))

            try:
                data = await self._post(body)
            except (httpx.HTTPError, ValueError) as e:
                # ValueError covers an undecodable JSON body
                last_error = str(e) or type(e).__name__
                if attempt < max_attempts:
                    logger.warning("Gemini attempt %d/%d failed: %s", attempt, max_attempts, last_error)
                continue

            # Extraction failures are terminal; only transport/status failures are retried
            try:
                return extract_text(data)
            except EmptyResponseError as e:
                logger.error("Gemini returned no text: %s", e)
                return GenerationFailure(kind="empty_response", detail=str(e), attempts=attempt)

        logger.error("Gemini API max retries reached (%d attempts): %s", max_attempts, last_error)
        return GenerationFailure(kind="transport", detail=last_error, attempts=max_attempts)
