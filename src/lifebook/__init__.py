"""Lifebook - turn daily journal records into a book of your life.

Day records (text, mood, star, photos) are aggregated into monthly packs
and yearly summaries: statistics, themed photo selections and a narrative.
Gemini writes the narrative and proposes themes when it is configured;
every AI step has a deterministic fallback.
"""

__version__ = "1.0.0"
