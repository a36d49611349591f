"""Unit tests for alias assignment and narrative anonymization.

Run with: pytest backend/tests/unit/reports/test_anonymization.py -v
"""

from safereport.reports.anonymize import (
    AliasAssignment,
    AnonymizationEngine,
    assign_aliases,
    get_anonymization_engine,
)
from safereport.reports.extraction import PlainMention, StructuredMention
from safereport.reports.models import MentionSourceFormat
from safereport.reports.resolution import ResolvedMention


def structured(uin: str, name: str = "Someone") -> ResolvedMention:
    return ResolvedMention(mention=StructuredMention(uin, name), internal_id=uin)


def plain(handle: str, uin: str) -> ResolvedMention:
    return ResolvedMention(mention=PlainMention(handle), internal_id=uin)


class TestAliasAssignment:
    """Tests for assign_aliases."""

    def test_labels_are_dense_from_one(self):
        """Test SUBJECT_1..n numbering."""
        assignment = assign_aliases([structured("42"), structured("7"), plain("jane", "9")])

        assert [e.label for e in assignment] == ["SUBJECT_1", "SUBJECT_2", "SUBJECT_3"]

    def test_structured_precede_plain(self):
        """Test that structured entries come first regardless of input order."""
        assignment = assign_aliases([plain("jane", "9"), structured("7")])

        assert assignment.as_dict() == {"7": "SUBJECT_1", "jane": "SUBJECT_2"}
        assert assignment.subject_uins == ["7", "9"]

    def test_duplicate_key_keeps_first_label(self):
        """Test that a repeated (format, key) pair is not relabeled."""
        assignment = assign_aliases([structured("7"), structured("7"), plain("bob", "3")])

        assert len(assignment) == 2
        assert assignment.label_for(MentionSourceFormat.PLAIN, "bob") == "SUBJECT_2"

    def test_same_person_two_formats(self):
        """Test that one UIN reached by both formats gets two labels but one subject."""
        assignment = assign_aliases([structured("9", "Jane"), plain("jane", "9")])

        assert [e.label for e in assignment] == ["SUBJECT_1", "SUBJECT_2"]
        assert assignment.subject_uins == ["9"]

    def test_empty(self):
        """Test that no resolved mentions gives an empty assignment."""
        assignment = assign_aliases([])

        assert not assignment
        assert assignment.subject_uins == []
        assert assignment.label_for(MentionSourceFormat.STRUCTURED, "1") is None


class TestAnonymize:
    """Tests for AnonymizationEngine.anonymize."""

    def test_replaces_structured_mention(self):
        """Test the basic structured case."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([structured("42", "Jane Doe")])

        result = engine.anonymize("He did this. @[Jane Doe](42) was there.", assignment)

        assert result == "He did this. SUBJECT_1 was there."

    def test_structured_match_ignores_display_name(self):
        """Test that every occurrence of the id is replaced, whatever the name."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([structured("42", "Jane Doe")])

        result = engine.anonymize("@[Jane Doe](42) and later @[J. Doe](42)", assignment)

        assert result == "SUBJECT_1 and later SUBJECT_1"

    def test_replaces_plain_case_insensitively(self):
        """Test that @Jane and @JANE are replaced for handle jane."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([plain("jane", "9")])

        result = engine.anonymize("@Jane pushed me. Ask @JANE why.", assignment)

        assert result == "SUBJECT_1 pushed me. Ask SUBJECT_1 why."

    def test_plain_replacement_matches_whole_handle(self):
        """Test that @jane does not rewrite the start of @janet."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([plain("jane", "9")])

        result = engine.anonymize("@jane and @janet and @jane!", assignment)

        assert result == "SUBJECT_1 and @janet and SUBJECT_1!"

    def test_plain_prefix_of_dotted_handle_is_not_replaced(self):
        """Test that an unresolved @jane.doe survives when only jane resolves."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([plain("jane", "9")])

        result = engine.anonymize("@jane saw @jane.doe", assignment)

        assert result == "SUBJECT_1 saw @jane.doe"

    def test_handles_sharing_a_prefix_get_their_own_labels(self):
        """Test that @jane and @jane.doe are rewritten independently."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([plain("jane", "9"), plain("jane.doe", "12")])

        result = engine.anonymize("@jane and @jane.doe", assignment)

        assert result == "SUBJECT_1 and SUBJECT_2"

    def test_hyphenated_handle_is_not_split(self):
        """Test that @jane does not rewrite the start of @jane-d."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([plain("jane", "9")])

        assert engine.anonymize("@jane-d left", assignment) == "@jane-d left"

    def test_handle_followed_by_non_ascii_letter(self):
        """Test that a handle ends where the extractor ends it, before a non-ASCII letter."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([plain("jane", "9")])

        result = engine.anonymize("@janeé hit me", assignment)

        assert result == "SUBJECT_1é hit me"

    def test_unresolved_mentions_left_verbatim(self):
        """Test that mentions outside the assignment are untouched."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([structured("7", "John")])

        text = "@jane harassed me and @[John](7) watched, @[Ghost](999) too."
        result = engine.anonymize(text, assignment)

        assert result == "@jane harassed me and SUBJECT_1 watched, @[Ghost](999) too."

    def test_mixed_formats(self):
        """Test alias order with both formats."""
        engine = AnonymizationEngine()
        assignment = assign_aliases([structured("7", "John"), plain("jane", "9")])

        result = engine.anonymize("@jane harassed me and @[John](7) watched.", assignment)

        assert result == "SUBJECT_2 harassed me and SUBJECT_1 watched."

    def test_empty_assignment_returns_input(self):
        """Test that an empty assignment changes nothing."""
        engine = AnonymizationEngine()
        text = "@jane and @[John](7)"

        assert engine.anonymize(text, AliasAssignment()) == text

    def test_second_pass_is_noop(self):
        """Test that anonymizing twice equals anonymizing once."""
        engine = get_anonymization_engine()
        assignment = assign_aliases([structured("7", "John"), plain("jane", "9")])
        text = "@jane harassed me and @[John](7) watched. @Jane again."

        once = engine.anonymize(text, assignment)

        assert engine.anonymize(once, assignment) == once
        assert "@" not in once
