"""Tests for lifebook.core.digest and the built-in text tagger."""

from __future__ import annotations

from lifebook.core.collaborators import PhotoTags, SimpleTextTagger
from lifebook.core.digest import DigestProcessor
from lifebook.core.models import PhotoRecord


class StubPhotoTagger:
    def __init__(self, tags: PhotoTags) -> None:
        self.tags = tags
        self.seen: list[str] = []

    def analyze(self, photo: PhotoRecord) -> PhotoTags:
        self.seen.append(photo.id)
        return self.tags


class TestSimpleTextTagger:
    """Tests for SimpleTextTagger."""

    def test_keywords_by_frequency(self) -> None:
        """Frequent content words first; short and stop words dropped."""
        analysis = SimpleTextTagger().analyze_text("Hiking hiking with Sam near Tahoe")
        assert analysis.keywords == ["hiking", "near", "tahoe"]

    def test_entities_skip_sentence_start(self) -> None:
        """Capitalised words inside a sentence are entities."""
        analysis = SimpleTextTagger().analyze_text("Lunch with Priya in Lisbon. Great food.")
        assert analysis.entities == ["Priya", "Lisbon"]

    def test_empty_text(self) -> None:
        """Blank text is neutral and empty."""
        analysis = SimpleTextTagger().analyze_text("   ")

        assert analysis.keywords == []
        assert analysis.sentiment == 0.5

    def test_count_words(self) -> None:
        """Whitespace-separated tokens are counted."""
        assert SimpleTextTagger().count_words("one two  three\nfour") == 4
        assert SimpleTextTagger().count_words("") == 0


class TestDigestProcessor:
    """Tests for DigestProcessor."""

    def test_keywords_text_then_scenes_then_ocr(self, make_day, make_photo) -> None:
        """Keywords are gathered in source order and deduplicated."""
        day = make_day(
            1,
            text="Garden party with Nora",
            photos=[make_photo("a", scenes=["garden", "table"], ocr_text="Welcome banner")],
        )
        keywords = DigestProcessor().derive_keywords(day)

        assert keywords == ["garden", "party", "nora", "Nora", "table", "welcome", "banner"]

    def test_keywords_capped(self, make_day, make_photo) -> None:
        """Derived keywords are capped at twenty."""
        photos = [
            make_photo(f"p{i}", scenes=[f"scene{i}-{j}" for j in range(8)]) for i in range(4)
        ]
        keywords = DigestProcessor().derive_keywords(make_day(1, photos=photos))

        assert len(keywords) == 20

    def test_process_rebuilds_keywords(self, make_day, make_photo) -> None:
        """process replaces existing keywords."""
        day = make_day(1, ["stale"], [make_photo("a", scenes=["lake"])])
        assert DigestProcessor().process(day).keywords == ["lake"]

    def test_retag_only_untagged(self, make_day, make_photo) -> None:
        """Tagged photos are left alone; untagged ones are analysed."""
        tagger = StubPhotoTagger(PhotoTags(scenes=["dog"], has_faces=False, quality_score=1.4))
        day = make_day(1, photos=[make_photo("tagged", scenes=["cat"]), make_photo("raw")])

        updated, changed = DigestProcessor(photo_tagger=tagger).retag_untagged(day)

        assert changed is True
        assert tagger.seen == ["raw"]
        assert updated.photos[1].detected_scenes == ["dog"]
        assert updated.photos[1].quality_score == 1.0
        assert updated.keywords == ["cat", "dog"]

    def test_retag_without_tagger(self, make_day, make_photo) -> None:
        """Without a tagger nothing changes."""
        day = make_day(1, photos=[make_photo("raw")])
        updated, changed = DigestProcessor().retag_untagged(day)

        assert changed is False
        assert updated is day

    def test_retag_nothing_found(self, make_day, make_photo) -> None:
        """A tagger that finds no scenes reports no change."""
        tagger = StubPhotoTagger(PhotoTags())
        day = make_day(1, ["keep"], [make_photo("raw")])
        updated, changed = DigestProcessor(photo_tagger=tagger).retag_untagged(day)

        assert changed is False
        assert updated.keywords == ["keep"]
