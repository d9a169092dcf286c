"""Contracts for the tagging collaborators, plus a plain-text default.

Image classification, face detection and OCR live outside this package;
only their output tags are consumed, through PhotoTagger. Text tagging
has a small built-in implementation so the pipelines can run anywhere.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol

from lifebook.core.models import PhotoRecord

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "can",
        "her", "was", "one", "our", "out", "day", "get", "has", "him",
        "his", "how", "man", "new", "now", "old", "see", "two", "way",
        "who", "boy", "did", "its", "let", "put", "say", "she", "too",
        "use", "have", "this", "that", "with", "from", "they", "been",
        "were", "said", "what", "when", "your", "into", "just", "know",
        "take", "than", "them", "well", "only", "some", "time", "then",
        "there", "their", "would", "could", "should", "about", "after",
        "really", "today", "very", "much", "went", "also",
    }
)

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")


@dataclass(frozen=True)
class TextAnalysis:
    """Output of a text tagger.

    Attributes:
        sentiment: Score in [0, 1], 0.5 meaning neutral.
        keywords: Most frequent content words, most frequent first.
        entities: Names of people, places or organisations.
    """

    sentiment: float = 0.5
    keywords: list[str] = field(default_factory=list)
    entities: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PhotoTags:
    """Output of a photo tagger for one photo."""

    scenes: list[str] = field(default_factory=list)
    has_faces: bool = False
    quality_score: float = 0.5
    ocr_text: str | None = None


class TextTagger(Protocol):
    def analyze_text(self, text: str) -> TextAnalysis: ...

    def count_words(self, text: str) -> int: ...


class PhotoTagger(Protocol):
    def analyze(self, photo: PhotoRecord) -> PhotoTags: ...


class SimpleTextTagger:
    """Frequency-based text tagger with no model behind it.

    Keywords are lower-cased words longer than three characters that are
    not stop words, ranked by frequency. Entities are capitalised words that
    do not open a sentence. Sentiment is always neutral.

    Example:
        >>> tagger = SimpleTextTagger()
        >>> tagger.analyze_text("Hiking hiking with Sam near Tahoe").keywords
        ['hiking', 'near', 'tahoe']
    """

    def __init__(self, max_keywords: int = 10) -> None:
        self.max_keywords = max_keywords

    def analyze_text(self, text: str) -> TextAnalysis:
        if not text or not text.strip():
            return TextAnalysis()
        return TextAnalysis(
            sentiment=0.5,
            keywords=self._keywords(text),
            entities=self._entities(text),
        )

    def count_words(self, text: str) -> int:
        return len(text.split()) if text else 0

    def _keywords(self, text: str) -> list[str]:
        words = [w.lower() for w in _WORD_RE.findall(text)]
        counts = Counter(w for w in words if len(w) > 3 and w not in STOP_WORDS)
        ranked = sorted(counts.items(), key=lambda item: (-item[1], words.index(item[0])))
        return [word for word, _ in ranked[: self.max_keywords]]

    def _entities(self, text: str) -> list[str]:
        entities: list[str] = []
        for sentence in re.split(r"[.!?]\s+", text):
            tokens = _WORD_RE.findall(sentence)
            for token in tokens[1:]:
                if token[0].isupper() and token.lower() not in STOP_WORDS and token not in entities:
                    entities.append(token)
        return entities
