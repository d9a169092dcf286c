"""Plain-text layout of persisted narratives.

AI narratives are stored as::

    ---OPENING---
    <opening>

    <journey>

    <milestones>

    ---CLOSING---
    <closing>

Template narratives (and packs written before the markers existed) are
just paragraphs separated by blank lines. ``split_narrative`` reads both.
"""

from __future__ import annotations

from dataclasses import dataclass

OPENING_MARKER = "---OPENING---"
CLOSING_MARKER = "---CLOSING---"
PARAGRAPH_BREAK = "\n\n"


@dataclass(frozen=True)
class NarrativeSections:
    opening: str
    body: str
    closing: str


def compose_narrative(opening: str, closing: str, *body: str | None) -> str:
    """Join sections with the opening/closing markers; empty body parts are dropped."""
    parts = [part.strip() for part in body if part and part.strip()]
    middle = PARAGRAPH_BREAK.join([opening.strip(), *parts])
    return f"{OPENING_MARKER}\n{middle}{PARAGRAPH_BREAK}{CLOSING_MARKER}\n{closing.strip()}"


def split_narrative(text: str) -> NarrativeSections:
    """Recover opening, body and closing from stored narrative text.

    With markers, the opening is the first paragraph after the opening
    marker, the body is everything else before the closing marker, and the
    closing is the text after it. Without markers, the first and last
    paragraphs are the opening and closing.
    """
    text = text.strip()
    if OPENING_MARKER in text and CLOSING_MARKER in text:
        head, _, closing = text.partition(OPENING_MARKER)[2].partition(CLOSING_MARKER)
        paragraphs = _paragraphs(head)
        opening = paragraphs[0] if paragraphs else ""
        return NarrativeSections(
            opening=opening,
            body=PARAGRAPH_BREAK.join(paragraphs[1:]),
            closing=closing.strip(),
        )

    paragraphs = _paragraphs(text)
    if not paragraphs:
        return NarrativeSections("", "", "")
    if len(paragraphs) == 1:
        return NarrativeSections(paragraphs[0], "", "")
    return NarrativeSections(
        opening=paragraphs[0],
        body=PARAGRAPH_BREAK.join(paragraphs[1:-1]),
        closing=paragraphs[-1],
    )


def _paragraphs(text: str) -> list[str]:
    return [p.strip() for p in text.split(PARAGRAPH_BREAK) if p.strip()]
