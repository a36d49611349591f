"""Alias assignment and narrative anonymization.

Every resolved mention gets a placeholder label ``SUBJECT_<n>``. Labels
are numbered densely from 1 in first-seen order, structured mentions
before plain ones. The anonymizer then rewrites every occurrence of each
resolved mention with its label and leaves unresolved mentions as they
were written.

Labels never start with ``@``, so anonymizing an already anonymized text
with the same assignment changes nothing.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .extraction.mentions import (
    HANDLE_CHARS,
    MENTION_SIGIL,
    MentionSource,
    iter_structured_spans,
)
from .models import MentionSourceFormat
from .resolution.identity import ResolvedMention

SUBJECT_LABEL_PREFIX = "SUBJECT_"


@dataclass(frozen=True)
class AliasEntry:
    """One resolved mention and the label that replaces it."""

    mention: MentionSource
    internal_id: str
    label: str

    @property
    def source_format(self) -> MentionSourceFormat:
        return self.mention.source_format

    @property
    def key(self) -> str:
        return self.mention.key


@dataclass(frozen=True)
class AliasAssignment:
    """Ordered, injective mapping from resolved mention to label."""

    entries: tuple[AliasEntry, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[AliasEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def label_for(self, source_format: MentionSourceFormat, key: str) -> str | None:
        for entry in self.entries:
            if entry.source_format == source_format and entry.key == key:
                return entry.label
        return None

    def as_dict(self) -> dict[str, str]:
        """Key to label, in alias order."""
        return {entry.key: entry.label for entry in self.entries}

    @property
    def subject_uins(self) -> list[str]:
        """Distinct internal ids in alias order."""
        seen: dict[str, None] = {}
        for entry in self.entries:
            seen.setdefault(entry.internal_id, None)
        return list(seen)


def assign_aliases(resolved: Iterable[ResolvedMention]) -> AliasAssignment:
    """Number resolved mentions, structured first, then plain.

    Within each format the input order is kept. A (format, key) pair seen
    twice keeps its first label.
    """
    resolved = list(resolved)
    ordered = [r for r in resolved if r.source_format == MentionSourceFormat.STRUCTURED]
    ordered += [r for r in resolved if r.source_format == MentionSourceFormat.PLAIN]

    entries: list[AliasEntry] = []
    seen: set[tuple[MentionSourceFormat, str]] = set()
    for r in ordered:
        if (r.source_format, r.key) in seen:
            continue
        seen.add((r.source_format, r.key))
        entries.append(AliasEntry(
            mention=r.mention,
            internal_id=r.internal_id,
            label=f"{SUBJECT_LABEL_PREFIX}{len(entries) + 1}",
        ))
    return AliasAssignment(entries=tuple(entries))


def _handle_ends_at(text: str, pos: int) -> bool:
    """True if a handle read up to ``pos`` would stop there, as the extractor reads it."""
    return pos >= len(text) or text[pos] not in HANDLE_CHARS


def _replace_structured(text: str, internal_id: str, label: str) -> str:
    pieces: list[str] = []
    pos = 0
    for span in iter_structured_spans(text):
        if span.internal_id != internal_id:
            continue
        pieces.append(text[pos:span.start])
        pieces.append(label)
        pos = span.end
    pieces.append(text[pos:])
    return "".join(pieces)


def _replace_plain(text: str, handle: str, label: str) -> str:
    """Replace ``@handle`` case-insensitively where the whole handle matches.

    ``@jane`` does not touch ``@jane.doe`` or ``@janet``; those are other
    handles.
    """
    pieces: list[str] = []
    pos = 0
    scan = 0
    width = len(handle) + 1
    while True:
        at = text.find(MENTION_SIGIL, scan)
        if at == -1:
            break
        end = at + width
        if text[at + 1:end].lower() == handle and _handle_ends_at(text, end):
            pieces.append(text[pos:at])
            pieces.append(label)
            pos = scan = end
        else:
            scan = at + 1
    pieces.append(text[pos:])
    return "".join(pieces)


class AnonymizationEngine:
    """Rewrites a narrative with alias labels in place of resolved mentions."""

    def anonymize(self, text: str, assignment: AliasAssignment) -> str:
        """Replace every occurrence of each resolved mention with its label.

        Entries are applied in alias order. Structured entries match
        ``@[any name](<id>)``; plain entries match ``@<handle>``
        case-insensitively, and only where the handle is not followed
        by another handle character.

        Args:
            text: Original narrative
            assignment: Alias assignment for this submission

        Returns:
            The anonymized narrative; ``text`` itself when the assignment
            is empty
        """
        if not assignment:
            return text

        for entry in assignment:
            if entry.source_format == MentionSourceFormat.STRUCTURED:
                text = _replace_structured(text, entry.key, entry.label)
            else:
                text = _replace_plain(text, entry.key, entry.label)
        return text


_engine: AnonymizationEngine | None = None


def get_anonymization_engine() -> AnonymizationEngine:
    """Get the anonymization engine singleton."""
    global _engine
    if _engine is None:
        _engine = AnonymizationEngine()
    return _engine
