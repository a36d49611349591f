"""Subject mention extraction.

Narratives reference people in two syntaxes:

- Structured: ``@[Display Name](12345)``, inserted by the form's
  autocomplete. The digits are an internal identifier (UIN).
- Plain: ``@handle``, typed by hand. The handle is one or more ASCII
  letters, digits, ``.``, ``_`` or ``-`` and must be looked up.

Extraction is a two-pass scan. Pass one finds every structured span and
removes it from the text; pass two looks for plain handles only in what
remains, so the bracketed name of a structured mention is never read as
a handle.
"""

import string
from dataclasses import dataclass, field
from typing import ClassVar, Iterator, Union

from ..models import MentionSourceFormat

MENTION_SIGIL = "@"
HANDLE_CHARS = frozenset(string.ascii_letters + string.digits + "._-")
ID_DIGITS = frozenset(string.digits)


@dataclass(frozen=True)
class StructuredMention:
    """A mention that carries its internal identifier."""

    internal_id: str
    display_name: str

    source_format: ClassVar[MentionSourceFormat] = MentionSourceFormat.STRUCTURED

    @property
    def key(self) -> str:
        return self.internal_id

    @property
    def display_text(self) -> str:
        return self.display_name


@dataclass(frozen=True)
class PlainMention:
    """A typed ``@handle``; ``handle`` is stored lowercased."""

    handle: str

    source_format: ClassVar[MentionSourceFormat] = MentionSourceFormat.PLAIN

    @property
    def key(self) -> str:
        return self.handle

    @property
    def display_text(self) -> str:
        return f"{MENTION_SIGIL}{self.handle}"


MentionSource = Union[StructuredMention, PlainMention]


@dataclass(frozen=True)
class StructuredSpan:
    """Location of one structured mention in a text."""

    start: int
    end: int
    display_name: str
    internal_id: str


@dataclass(frozen=True)
class PlainSpan:
    """Location of one ``@handle`` in a text (handle as written)."""

    start: int
    end: int
    handle: str


@dataclass(frozen=True)
class MentionSet:
    """Deduplicated candidates of one text, partitioned by source format."""

    structured: tuple[StructuredMention, ...] = field(default_factory=tuple)
    plain: tuple[PlainMention, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.structured and not self.plain

    @property
    def candidates(self) -> tuple[MentionSource, ...]:
        """All candidates, structured first."""
        return self.structured + self.plain

    @property
    def internal_ids(self) -> list[str]:
        return [m.internal_id for m in self.structured]

    @property
    def handles(self) -> list[str]:
        return [m.handle for m in self.plain]


# =============================================================================
# Scanners
# =============================================================================


def _match_structured(text: str, at: int) -> StructuredSpan | None:
    """Try to read ``@[name](digits)`` starting at the sigil position ``at``."""
    open_bracket = at + 1
    if text[open_bracket:open_bracket + 1] != "[":
        return None

    close_bracket = text.find("]", open_bracket + 1)
    # Name must be non-empty; it runs to the first closing bracket.
    if close_bracket == -1 or close_bracket == open_bracket + 1:
        return None

    open_paren = close_bracket + 1
    if text[open_paren:open_paren + 1] != "(":
        return None

    end = open_paren + 1
    while end < len(text) and text[end] in ID_DIGITS:
        end += 1
    if end == open_paren + 1 or text[end:end + 1] != ")":
        return None

    return StructuredSpan(
        start=at,
        end=end + 1,
        display_name=text[open_bracket + 1:close_bracket],
        internal_id=text[open_paren + 1:end],
    )


def iter_structured_spans(text: str) -> Iterator[StructuredSpan]:
    """Yield non-overlapping structured mentions, left to right."""
    pos = 0
    while True:
        at = text.find(MENTION_SIGIL, pos)
        if at == -1:
            return
        span = _match_structured(text, at)
        if span is None:
            pos = at + 1
        else:
            yield span
            pos = span.end


def iter_plain_spans(text: str) -> Iterator[PlainSpan]:
    """Yield ``@handle`` occurrences, left to right.

    Structured spans are not excluded here; callers strip them first.
    """
    pos = 0
    while True:
        at = text.find(MENTION_SIGIL, pos)
        if at == -1:
            return
        end = at + 1
        while end < len(text) and text[end] in HANDLE_CHARS:
            end += 1
        if end == at + 1:
            pos = at + 1
        else:
            yield PlainSpan(start=at, end=end, handle=text[at + 1:end])
            pos = end


def strip_structured(text: str) -> str:
    """Return ``text`` with every structured mention removed."""
    pieces: list[str] = []
    pos = 0
    for span in iter_structured_spans(text):
        pieces.append(text[pos:span.start])
        pos = span.end
    pieces.append(text[pos:])
    return "".join(pieces)


# =============================================================================
# Extractor
# =============================================================================


class MentionExtractor:
    """Extracts subject mention candidates from a narrative.

    Pure: the same text always yields the same MentionSet, in the same
    order.
    """

    def extract(self, text: str) -> MentionSet:
        """Extract structured and plain mention candidates.

        Args:
            text: Narrative text

        Returns:
            MentionSet with structured candidates deduplicated by internal
            id and plain candidates deduplicated case-insensitively, both
            in first-seen order
        """
        if not text:
            return MentionSet()

        structured: dict[str, StructuredMention] = {}
        for span in iter_structured_spans(text):
            if span.internal_id not in structured:
                structured[span.internal_id] = StructuredMention(
                    internal_id=span.internal_id,
                    display_name=span.display_name,
                )

        plain: dict[str, PlainMention] = {}
        for span in iter_plain_spans(strip_structured(text)):
            handle = span.handle.lower()
            if handle not in plain:
                plain[handle] = PlainMention(handle=handle)

        return MentionSet(
            structured=tuple(structured.values()),
            plain=tuple(plain.values()),
        )


_extractor: MentionExtractor | None = None


def get_mention_extractor() -> MentionExtractor:
    """Get the mention extractor singleton."""
    global _extractor
    if _extractor is None:
        _extractor = MentionExtractor()
    return _extractor
