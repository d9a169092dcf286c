"""Per-day keyword derivation and photo retagging.

A day's keywords are rebuilt from scratch every time: text keywords and
entities first, then every photo's scenes, then keywords found in OCR
text. The list is deduplicated in that order and capped at twenty.
"""

from __future__ import annotations

import logging

from lifebook.core.collaborators import PhotoTagger, SimpleTextTagger, TextTagger
from lifebook.core.models import MAX_KEYWORDS_PER_DAY, DayRecord, PhotoRecord

logger = logging.getLogger(__name__)


class DigestProcessor:
    """Derives keywords for day records and fills in missing photo tags.

    Args:
        text_tagger: Text collaborator. Defaults to SimpleTextTagger.
        photo_tagger: Photo collaborator. Without one, photos keep whatever
            tags they arrived with.
    """

    def __init__(
        self,
        text_tagger: TextTagger | None = None,
        photo_tagger: PhotoTagger | None = None,
    ) -> None:
        self._text_tagger = text_tagger or SimpleTextTagger()
        self._photo_tagger = photo_tagger

    def derive_keywords(self, day: DayRecord) -> list[str]:
        keywords: list[str] = []

        if day.has_text:
            analysis = self._text_tagger.analyze_text(day.text or "")
            keywords.extend(analysis.keywords)
            keywords.extend(analysis.entities)

        for photo in day.photos:
            keywords.extend(photo.detected_scenes)

        for photo in day.photos:
            if photo.ocr_text and photo.ocr_text.strip():
                keywords.extend(self._text_tagger.analyze_text(photo.ocr_text).keywords)

        return list(dict.fromkeys(k for k in keywords if k))[:MAX_KEYWORDS_PER_DAY]

    def process(self, day: DayRecord) -> DayRecord:
        """Return a copy of ``day`` with all photos tagged and keywords rebuilt."""
        photos = [self._tag(photo) for photo in day.photos]
        updated = day.model_copy(update={"photos": photos})
        return updated.model_copy(update={"keywords": self.derive_keywords(updated)})

    def retag_untagged(self, day: DayRecord) -> tuple[DayRecord, bool]:
        """Tag only photos that have no detected scenes yet.

        Returns:
            The (possibly) updated day and whether anything changed. Keywords
            are rebuilt only when at least one photo was retagged.
        """
        if self._photo_tagger is None:
            return day, False

        changed = False
        photos: list[PhotoRecord] = []
        for photo in day.photos:
            if photo.is_tagged:
                photos.append(photo)
                continue
            retagged = self._tag(photo)
            changed = changed or retagged.is_tagged
            photos.append(retagged)

        if not changed:
            return day, False

        updated = day.model_copy(update={"photos": photos})
        updated = updated.model_copy(update={"keywords": self.derive_keywords(updated)})
        logger.debug(f"Retagged photos for {day.date.isoformat()}")
        return updated, True

    def _tag(self, photo: PhotoRecord) -> PhotoRecord:
        if self._photo_tagger is None:
            return photo
        tags = self._photo_tagger.analyze(photo)
        return photo.model_copy(
            update={
                "detected_scenes": list(tags.scenes),
                "has_faces": tags.has_faces,
                "quality_score": min(max(tags.quality_score, 0.0), 1.0),
                "ocr_text": tags.ocr_text,
            }
        )
