"""AI module for Lifebook.

client.py is the SOLE interface to the Gemini API. Everything else talks to
a text generator through NarrativeClient, which owns retries, prompt
budgets and response decoding.

Exports:
    - GeminiTextGenerator: Gemini-backed text generator
    - NarrativeClient: Retrying, schema-validating wrapper
    - TopicExtractor: AI topics with a keyword fallback
    - Template narratives for the non-AI path
    - Exception hierarchies for typed error handling
"""

from lifebook.ai.client import (
    AIAuthenticationError,
    AIBadRequestError,
    AIClientError,
    AIConnectionError,
    AIRateLimitError,
    AIServerError,
    AITimeoutError,
    AIUnavailableError,
    ContentBlockedError,
    GeminiTextGenerator,
)
from lifebook.ai.fallback import monthly_template_narrative, yearly_template_narrative
from lifebook.ai.narrative import (
    GenerationFailedError,
    NarrativeClient,
    NarrativeError,
    NarrativeResult,
    NarrativeUnavailableError,
    ParsingFailedError,
    PromptTooLongError,
    TextGenerator,
    extract_json,
)
from lifebook.ai.topics import (
    AITopicStrategy,
    KeywordTopicStrategy,
    TopicExtraction,
    TopicExtractor,
)

__all__ = [
    # Gemini
    "GeminiTextGenerator",
    "AIClientError",
    "AIUnavailableError",
    "AIAuthenticationError",
    "AIRateLimitError",
    "AIServerError",
    "AITimeoutError",
    "AIConnectionError",
    "AIBadRequestError",
    "ContentBlockedError",
    # Narrative client
    "NarrativeClient",
    "NarrativeResult",
    "TextGenerator",
    "extract_json",
    "NarrativeError",
    "NarrativeUnavailableError",
    "PromptTooLongError",
    "GenerationFailedError",
    "ParsingFailedError",
    # Topics
    "AITopicStrategy",
    "KeywordTopicStrategy",
    "TopicExtraction",
    "TopicExtractor",
    # Templates
    "monthly_template_narrative",
    "yearly_template_narrative",
]
