"""Narrative client: bounded, retrying, schema-validated text generation.

NarrativeClient wraps any text generator (normally GeminiTextGenerator)
and owns the whole failure policy, so call sites only supply a prompt, a
decode target and a fallback:

1. **Availability**: an unavailable generator is never called.
2. **Length guard**: an over-budget prompt is rejected before dispatch.
3. **Retry**: at most ``max_attempts`` calls, with exponential backoff.
4. **Parsing**: the JSON payload between the first opening and last
   closing bracket is validated against the decode target(s). A mismatch
   is terminal and never retried.

Example:
    >>> client = NarrativeClient(GeminiTextGenerator())
    >>> result = client.request_with_fallback(
    ...     prompt,
    ...     MonthlySummaryOutput,
    ...     fallback=lambda: template_summary,
    ... )
    >>> result.method
    <GenerationMethod.AI: 'ai'>
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, get_origin

from pydantic import TypeAdapter, ValidationError

from lifebook.config import AppConfig
from lifebook.core.models import GenerationMethod

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TextGenerator(Protocol):
    def is_available(self) -> bool: ...

    def generate(self, prompt: str) -> str: ...


# =============================================================================
# Exception Hierarchy
# =============================================================================


class NarrativeError(Exception):
    """Base class for narrative request failures.

    Attributes:
        message: Human-readable description (safe to log).
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message


class NarrativeUnavailableError(NarrativeError):
    """The generator is disabled or unreachable. An expected branch, not a fault."""

    def __init__(self) -> None:
        super().__init__("Text generator is not available")


class PromptTooLongError(NarrativeError):
    """The prompt exceeds its character budget. Raised before any call."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Prompt has {length} characters, limit is {limit}")


class GenerationFailedError(NarrativeError):
    """Every attempt failed."""

    def __init__(self, attempts: int, original_error: Exception | None = None) -> None:
        self.attempts = attempts
        reason = type(original_error).__name__ if original_error else "unknown error"
        super().__init__(f"Generation failed after {attempts} attempt(s): {reason}", original_error)


class ParsingFailedError(NarrativeError):
    """The response did not decode into any accepted target."""

    def __init__(self, targets: Sequence[Any], original_error: Exception | None = None) -> None:
        names = ", ".join(getattr(t, "__name__", str(t)) for t in targets)
        super().__init__(f"Response did not match {names}", original_error)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class NarrativeResult(Generic[T]):
    """Outcome of ``request_with_fallback``.

    Attributes:
        value: Decoded AI output, or the fallback's value.
        method: AI when the value came from the generator.
        failure: Why the fallback was used, if it was.
    """

    value: T
    method: GenerationMethod
    failure: NarrativeError | None = None

    @property
    def used_ai(self) -> bool:
        return self.method == GenerationMethod.AI


def extract_json(text: str, array: bool = False) -> str:
    """Slice from the first opening bracket to the last closing one.

    Returns the text unchanged when no bracket pair is found.

    Example:
        >>> extract_json('Sure! {"a": 1} Hope that helps.')
        '{"a": 1}'
    """
    opening, closing = ("[", "]") if array else ("{", "}")
    start = text.find(opening)
    end = text.rfind(closing)
    if start == -1 or end < start:
        return text
    return text[start : end + 1]


# =============================================================================
# Client
# =============================================================================


class NarrativeClient:
    """Retrying, schema-validating wrapper around a text generator.

    Args:
        generator: The text-generation collaborator. None means "never available".
        max_attempts: Total calls per request, first try included.
        retry_base_delay: The wait after failed attempt ``n`` (1-based) is
            ``retry_base_delay * 2**n`` seconds.
        max_prompt_chars: Default character budget.
        sleep: Called with each backoff delay; injectable for tests.
    """

    def __init__(
        self,
        generator: TextGenerator | None,
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
        max_prompt_chars: int = 10000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._generator = generator
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self.max_prompt_chars = max_prompt_chars
        self._sleep = sleep
        self._logger = logging.getLogger(f"{__name__}.NarrativeClient")

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        generator: TextGenerator | None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "NarrativeClient":
        return cls(
            generator,
            max_attempts=config.ai.max_attempts,
            retry_base_delay=config.ai.retry_base_delay,
            max_prompt_chars=config.ai.max_prompt_chars,
            sleep=sleep,
        )

    def is_available(self) -> bool:
        return self._generator is not None and self._generator.is_available()

    def request(
        self,
        prompt: str,
        targets: Any | Sequence[Any],
        max_chars: int | None = None,
    ) -> Any:
        """Send a prompt and decode the response.

        Args:
            prompt: Full prompt text.
            targets: A decode target (pydantic model or ``list[Model]``) or a
                sequence of them, tried in order.
            max_chars: Character budget for this call site.

        Returns:
            The first successful decode.

        Raises:
            NarrativeUnavailableError: Generator missing or unavailable.
            PromptTooLongError: Prompt length at or over budget.
            GenerationFailedError: All attempts failed.
            ParsingFailedError: No target matched the response.
        """
        target_list = list(targets) if isinstance(targets, (list, tuple)) else [targets]

        if not self.is_available():
            self._logger.info("Text generator unavailable; using fallback")
            raise NarrativeUnavailableError()

        limit = max_chars if max_chars is not None else self.max_prompt_chars
        if len(prompt) >= limit:
            raise PromptTooLongError(len(prompt), limit)

        raw = self._generate_with_retry(prompt)
        return self._decode(raw, target_list)

    def request_with_fallback(
        self,
        prompt: str,
        targets: Any | Sequence[Any],
        fallback: Callable[[], T],
        max_chars: int | None = None,
        convert: Callable[[Any], T] | None = None,
    ) -> NarrativeResult[T]:
        """Like ``request`` but never raises a NarrativeError.

        Any narrative failure is logged and ``fallback()`` supplies the value.
        ``convert`` maps a decoded response to the same type the fallback
        returns (for example, sections joined into one narrative string).
        """
        try:
            value = self.request(prompt, targets, max_chars=max_chars)
            if convert is not None:
                value = convert(value)
        except NarrativeError as e:
            if not isinstance(e, NarrativeUnavailableError):
                self._logger.warning(f"Narrative request failed, using fallback: {e}")
            return NarrativeResult(fallback(), GenerationMethod.TEMPLATE, failure=e)
        return NarrativeResult(value, GenerationMethod.AI)

    def _generate_with_retry(self, prompt: str) -> str:
        assert self._generator is not None
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._generator.generate(prompt)
            except Exception as e:
                last_error = e
                if getattr(e, "retriable", True) is False:
                    self._logger.warning(f"Attempt {attempt} failed permanently: {type(e).__name__}")
                    raise GenerationFailedError(attempt, e) from e
                if attempt >= self.max_attempts:
                    break
                delay = self.retry_base_delay * (2**attempt)
                self._logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed ({type(e).__name__}); "
                    f"retrying in {delay:.1f}s"
                )
                self._sleep(delay)

        self._logger.error(f"Max attempts ({self.max_attempts}) exhausted")
        raise GenerationFailedError(self.max_attempts, last_error)

    def _decode(self, raw: str, targets: list[Any]) -> Any:
        last_error: Exception | None = None
        for target in targets:
            payload = extract_json(raw, array=get_origin(target) is list)
            try:
                return TypeAdapter(target).validate_json(payload)
            except ValidationError as e:
                last_error = e
        raise ParsingFailedError(targets, last_error)
