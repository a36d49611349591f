"""Subject mention extraction for incident narratives.

Components:
- MentionExtractor: Two-pass scanner for @[Name](UIN) and @handle mentions
- StructuredMention / PlainMention: The two candidate variants, tagged by source format
- iter_structured_spans / iter_plain_spans: Low-level scanners shared with anonymization
"""

from .mentions import (
    MentionExtractor,
    MentionSet,
    MentionSource,
    PlainMention,
    PlainSpan,
    StructuredMention,
    StructuredSpan,
    get_mention_extractor,
    iter_plain_spans,
    iter_structured_spans,
    strip_structured,
)

__all__ = [
    "MentionExtractor",
    "MentionSet",
    "MentionSource",
    "PlainMention",
    "PlainSpan",
    "StructuredMention",
    "StructuredSpan",
    "get_mention_extractor",
    "iter_plain_spans",
    "iter_structured_spans",
    "strip_structured",
]
