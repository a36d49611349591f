"""Unit tests for subject mention extraction.

Tests the two-pass scanner for structured @[Name](UIN) mentions and
plain @handle mentions.

Run with: pytest backend/tests/unit/reports/test_mention_extraction.py -v
"""

from safereport.reports.extraction import (
    MentionExtractor,
    PlainMention,
    StructuredMention,
    get_mention_extractor,
    iter_plain_spans,
    iter_structured_spans,
    strip_structured,
)
from safereport.reports.models import MentionSourceFormat


class TestStructuredExtraction:
    """Tests for @[Display Name](UIN) mentions."""

    def test_extracts_structured_mention(self):
        """Test a single structured mention."""
        extractor = MentionExtractor()

        mentions = extractor.extract("He did this. @[Jane Doe](42) was there.")

        assert mentions.structured == (StructuredMention(internal_id="42", display_name="Jane Doe"),)
        assert mentions.plain == ()

    def test_structured_only_text_has_no_plain_candidates(self):
        """Test that names inside brackets are never read as handles."""
        extractor = MentionExtractor()

        text = "@[Jane Doe](42) told @[John.Smith](7) and @[Ann](42) again."
        mentions = extractor.extract(text)

        assert mentions.plain == ()
        assert mentions.internal_ids == ["42", "7"]

    def test_deduplicates_by_internal_id(self):
        """Test that the first display name wins for a repeated id."""
        extractor = MentionExtractor()

        mentions = extractor.extract("@[Jane](42) then @[Jane Doe](42)")

        assert len(mentions.structured) == 1
        assert mentions.structured[0].display_name == "Jane"

    def test_rejects_non_numeric_id(self):
        """Test that @[Name](abc) is not a structured mention."""
        spans = list(iter_structured_spans("@[Jane](abc)"))

        assert spans == []

    def test_rejects_empty_name(self):
        """Test that @[](42) is not a structured mention."""
        spans = list(iter_structured_spans("@[](42)"))

        assert spans == []

    def test_span_positions(self):
        """Test that spans cover the whole mention."""
        text = "x @[Jane Doe](42) y"
        (span,) = iter_structured_spans(text)

        assert text[span.start:span.end] == "@[Jane Doe](42)"
        assert span.display_name == "Jane Doe"
        assert span.internal_id == "42"


class TestPlainExtraction:
    """Tests for @handle mentions."""

    def test_extracts_handles_in_order(self):
        """Test plain handles in first-seen order."""
        extractor = MentionExtractor()

        mentions = extractor.extract("@jane harassed me and @sam.lee watched")

        assert mentions.handles == ["jane", "sam.lee"]

    def test_handles_are_lowercased_and_deduplicated(self):
        """Test that @Jane and @jane are the same candidate."""
        extractor = MentionExtractor()

        mentions = extractor.extract("@Jane said hi, then @jane left. @JANE!")

        assert mentions.plain == (PlainMention(handle="jane"),)

    def test_handle_charset(self):
        """Test that handles stop at the first character outside [A-Za-z0-9._-]."""
        spans = list(iter_plain_spans("ping @a.b_c-d9, @émile and @ alone"))

        assert [s.handle for s in spans] == ["a.b_c-d9"]

    def test_email_address_yields_domain_handle(self):
        """Test that the part after @ in an address reads as a handle."""
        extractor = MentionExtractor()

        mentions = extractor.extract("mail me at someone@example.org")

        assert mentions.handles == ["example.org"]


class TestTwoPassScan:
    """Tests for the interaction between the two passes."""

    def test_structured_before_plain_regardless_of_position(self):
        """Test that candidates list structured first."""
        extractor = MentionExtractor()

        mentions = extractor.extract("@jane harassed me and @[John](7) watched.")

        formats = [m.source_format for m in mentions.candidates]
        assert formats == [MentionSourceFormat.STRUCTURED, MentionSourceFormat.PLAIN]

    def test_strip_structured_removes_spans(self):
        """Test that structured spans are removed, not replaced."""
        assert strip_structured("a @[Jane](42) b") == "a  b"

    def test_malformed_structured_falls_back_to_plain(self):
        """Test that an unterminated structured mention is left for pass two."""
        extractor = MentionExtractor()

        mentions = extractor.extract("@[Jane](42 and @bob")

        assert mentions.structured == ()
        assert mentions.handles == ["bob"]

    def test_empty_text(self):
        """Test that empty text yields an empty set."""
        extractor = MentionExtractor()

        assert extractor.extract("").is_empty
        assert extractor.extract("no mentions here").is_empty

    def test_extraction_is_repeatable(self):
        """Test that extracting twice gives identical results."""
        extractor = get_mention_extractor()

        text = "@[Jane](42) @bob @[John](7) @alice @Bob"

        assert extractor.extract(text) == extractor.extract(text)

    def test_display_text(self):
        """Test how candidates present themselves."""
        mentions = MentionExtractor().extract("@[Jane Doe](42) @bob")

        assert [m.display_text for m in mentions.candidates] == ["Jane Doe", "@bob"]
