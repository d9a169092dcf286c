"""Gemini text generator for Lifebook.

This module is the SOLE INTERFACE to the Gemini API. Nothing else in the
package imports google-generativeai. It exposes the two-method contract the
narrative layer expects (``is_available`` and ``generate``) and maps SDK
failures to a typed exception hierarchy.

Retrying is not done here: NarrativeClient owns the retry budget so that the
attempt count stays bounded in one place.

Example:
    >>> from lifebook.ai.client import GeminiTextGenerator
    >>>
    >>> generator = GeminiTextGenerator()
    >>> if generator.is_available():
    ...     raw = generator.generate("Summarize this month...")

Security Rules:
- NEVER log API keys (ever, in any form)
- NEVER log full prompts (they contain journal entries)
- NEVER log full responses (they contain personal narratives)
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Literal

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import GenerationConfig, HarmBlockThreshold, HarmCategory

from lifebook.config import AppConfig, APIKeyNotFoundError, get_api_key, get_config


# =============================================================================
# Secure Logging Filter
# =============================================================================


class RedactingFilter(logging.Filter):
    """Logging filter that redacts anything that looks like an API key.

    Example:
        >>> logger = logging.getLogger("my_module")
        >>> logger.addFilter(RedactingFilter())
        >>> logger.info("Using api_key=AIzaSy123456789...")
        # Output: "Using api_key=[REDACTED]"
    """

    PATTERNS = [
        re.compile(r'(api_key\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r'(token\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r"(bearer\s+)([a-zA-Z0-9_\-]{20,})", re.IGNORECASE),
        # Gemini keys start with AIza
        re.compile(r"\bAIza[a-zA-Z0-9_\-]{30,}\b"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._redact(record.msg)
        if record.args:
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    def _redact(self, text: str) -> str:
        for pattern in self.PATTERNS[:3]:
            text = pattern.sub(r"\1[REDACTED]", text)
        for pattern in self.PATTERNS[3:]:
            text = pattern.sub("[REDACTED]", text)
        return text


logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())


# =============================================================================
# Exception Hierarchy
# =============================================================================


class AIClientError(Exception):
    """Base exception for all Gemini client errors.

    Attributes:
        message: Human-readable error description (safe to log).
        retriable: Whether a later attempt could succeed.
        original_error: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        retriable: bool = False,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retriable = retriable
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message


class AIUnavailableError(AIClientError):
    """AI is switched off or has no key; callers should use their fallback."""

    def __init__(self, reason: Literal["disabled", "no_api_key"], message: str | None = None) -> None:
        self.reason = reason
        default_messages = {
            "disabled": "AI features are disabled in configuration",
            "no_api_key": "No Gemini API key configured",
        }
        super().__init__(message or default_messages[reason], retriable=False)


class AIAuthenticationError(AIClientError):
    """The API key was rejected."""

    def __init__(self, original_error: Exception | None = None) -> None:
        super().__init__("Gemini rejected the API key", retriable=False, original_error=original_error)


class AIRateLimitError(AIClientError):
    """Too many requests or quota exhausted."""

    def __init__(self, original_error: Exception | None = None) -> None:
        super().__init__("Gemini rate limit reached", retriable=True, original_error=original_error)


class AIServerError(AIClientError):
    """Gemini returned a 5xx error."""

    def __init__(self, status_code: int | None = None, original_error: Exception | None = None) -> None:
        self.status_code = status_code
        suffix = f" ({status_code})" if status_code else ""
        super().__init__(f"Gemini server error{suffix}", retriable=True, original_error=original_error)


class AITimeoutError(AIClientError):
    """The request exceeded the configured timeout."""

    def __init__(self, timeout_seconds: int, original_error: Exception | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Gemini request timed out after {timeout_seconds}s",
            retriable=True,
            original_error=original_error,
        )


class AIConnectionError(AIClientError):
    """The network connection to Gemini failed or was reset."""

    def __init__(self, original_error: Exception | None = None) -> None:
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Connection to Gemini failed{detail}", retriable=True, original_error=original_error)


class AIBadRequestError(AIClientError):
    """The request was malformed or the model was not found."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, retriable=False, original_error=original_error)


class ContentBlockedError(AIClientError):
    """The prompt or response was blocked by safety filters."""

    def __init__(self, blocked_reason: str | None = None, original_error: Exception | None = None) -> None:
        self.blocked_reason = blocked_reason
        super().__init__(
            f"Content blocked by safety filters: {blocked_reason or 'unknown'}",
            retriable=False,
            original_error=original_error,
        )


# =============================================================================
# Generator
# =============================================================================


class GeminiTextGenerator:
    """Text-generation collaborator backed by Gemini.

    The SDK is configured once at construction; no request is made until
    ``generate`` is called.

    Args:
        config: Application configuration. If None, loads from get_config().
        api_key: Override API key. If None, loads from configured sources.
    """

    def __init__(self, config: AppConfig | None = None, api_key: str | None = None) -> None:
        self._config = config or get_config()
        self._model: Any = None
        self._api_key: str | None = None
        self._is_configured = False
        self._logger = logging.getLogger(f"{__name__}.GeminiTextGenerator")
        self._logger.addFilter(RedactingFilter())

        if not self._config.ai.is_enabled():
            self._logger.info("AI is disabled in configuration")
            return

        try:
            self._api_key = api_key or get_api_key().get_secret_value()
        except APIKeyNotFoundError:
            self._logger.info("No API key configured; narratives will use templates")
            return

        genai.configure(api_key=self._api_key)
        self._is_configured = True
        self._logger.debug(f"Gemini configured with model {self._config.ai.narrative_model}")

    def is_available(self) -> bool:
        """True when AI is enabled and a key is configured. Makes no API call."""
        return self._config.ai.is_enabled() and self._is_configured and self._api_key is not None

    def generate(self, prompt: str) -> str:
        """Send one prompt and return the raw response text.

        Raises:
            AIUnavailableError: If AI is disabled or no key is configured.
            AIClientError: Any mapped SDK failure.
        """
        if not self._config.ai.is_enabled():
            raise AIUnavailableError("disabled")
        if not self.is_available():
            raise AIUnavailableError("no_api_key")

        start_time = time.time()
        try:
            response = self._get_model().generate_content(
                prompt,
                generation_config=self._get_generation_config(),
                safety_settings=self._get_safety_settings(),
                request_options={"timeout": self._config.ai.timeout_seconds},
            )
        except Exception as e:
            mapped = self._map_exception(e)
            self._logger.warning(f"Generation failed: {type(mapped).__name__}")
            raise mapped from e

        try:
            text = response.text
        except ValueError as e:
            # .text raises when the candidate was blocked or empty
            feedback = getattr(response, "prompt_feedback", None)
            reason = getattr(feedback, "block_reason", None)
            raise ContentBlockedError(str(reason) if reason else None, original_error=e) from e

        latency_ms = (time.time() - start_time) * 1000
        self._logger.info(f"Generation successful: {len(text)} chars in {latency_ms:.0f}ms")
        return text

    def _get_model(self) -> Any:
        if self._model is None:
            self._model = genai.GenerativeModel(model_name=self._config.ai.narrative_model)
        return self._model

    def _get_generation_config(self) -> GenerationConfig:
        return GenerationConfig(
            temperature=self._config.ai.temperature,
            max_output_tokens=self._config.ai.max_output_tokens,
        )

    def _get_safety_settings(self) -> dict:
        # Journals discuss hard days; only block clearly harmful content
        return {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_ONLY_HIGH,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        }

    def _map_exception(self, error: Exception) -> AIClientError:
        """Map SDK exceptions to our exception hierarchy."""
        if isinstance(error, AIClientError):
            return error
        if isinstance(error, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated)):
            return AIAuthenticationError(original_error=error)
        if isinstance(error, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
            return AIRateLimitError(original_error=error)
        if isinstance(error, google_exceptions.DeadlineExceeded):
            return AITimeoutError(self._config.ai.timeout_seconds, original_error=error)
        if isinstance(error, google_exceptions.InternalServerError):
            return AIServerError(status_code=500, original_error=error)
        if isinstance(error, google_exceptions.ServiceUnavailable):
            return AIServerError(status_code=503, original_error=error)
        if isinstance(error, google_exceptions.ServerError):
            status = int(error.code) if error.code else None
            return AIServerError(status_code=status, original_error=error)
        if isinstance(error, (google_exceptions.InvalidArgument, google_exceptions.NotFound)):
            return AIBadRequestError(str(error), original_error=error)
        if isinstance(error, TimeoutError):
            return AITimeoutError(self._config.ai.timeout_seconds, original_error=error)
        if isinstance(error, OSError):
            return AIConnectionError(original_error=error)

        error_str = str(error).lower()
        if "blocked" in error_str or "safety" in error_str:
            return ContentBlockedError(original_error=error)
        if "429" in error_str or "rate" in error_str or "quota" in error_str:
            return AIRateLimitError(original_error=error)
        if "timeout" in error_str or "deadline" in error_str:
            return AITimeoutError(self._config.ai.timeout_seconds, original_error=error)
        if "500" in error_str or "502" in error_str or "503" in error_str:
            return AIServerError(original_error=error)

        # Unknown failures may be transient
        return AIClientError(str(error), retriable=True, original_error=error)
