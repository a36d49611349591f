"""Reporter and subject identity resolution.

Resolves a reporter's contact address to their UIN through a one-way
hash, and mention candidates to verified UINs:

- Reporter: salted SHA-256 of the normalized address, looked up in
  identity_mapping. A storage fault here is fatal to the request.
- Structured mentions: existence check against the public directory.
- Plain mentions: positive match on identity_mapping.username.

Mention lookups degrade to "no match" on storage faults so one flaky
read cannot block a report whose subjects resolved through the other
path.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from typing import Sequence

from ...config import get_settings
from ...logging import log_mention_resolution
from ..errors import StorageFault
from ..extraction.mentions import MentionSet, MentionSource, PlainMention, StructuredMention
from ..models import MentionSourceFormat
from ..store import ReportStore

logger = logging.getLogger(__name__)


def hash_contact_address(contact_address: str, salt: str = "") -> str:
    """One-way hash of a contact address.

    The address is stripped and lowercased first so that the same mailbox
    always hashes to the same value.
    """
    normalized = contact_address.strip().lower()
    return hashlib.sha256(f"{salt}{normalized}".encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ResolvedMention:
    """A mention candidate bound to a verified internal identifier."""

    mention: MentionSource
    internal_id: str

    @property
    def source_format(self) -> MentionSourceFormat:
        return self.mention.source_format

    @property
    def key(self) -> str:
        return self.mention.key


class IdentityResolver:
    """Resolves reporters and mentioned subjects against the identity store."""

    def __init__(self, store: ReportStore, hash_salt: str | None = None):
        """Initialize the resolver.

        Args:
            store: Identity/report store
            hash_salt: Salt for contact-address hashing. Defaults to the
                configured identity_hash_salt.
        """
        self._store = store
        self._hash_salt = get_settings().identity_hash_salt if hash_salt is None else hash_salt

    async def resolve_reporter(self, contact_address: str) -> str | None:
        """Resolve a reporter's contact address to their UIN.

        Returns:
            The UIN, or None if the address has no registered identity

        Raises:
            StorageFault: The identity lookup failed
        """
        email_hash = hash_contact_address(contact_address, self._hash_salt)
        return await self._store.lookup_by_hash(email_hash)

    async def verify_structured(
        self, mentions: Sequence[StructuredMention]
    ) -> list[ResolvedMention]:
        """Keep the structured mentions whose UIN exists in the directory.

        Order of ``mentions`` is preserved. Unknown ids are dropped silently.
        """
        if not mentions:
            return []

        try:
            verified = set(
                await self._store.verify_identifiers([m.internal_id for m in mentions])
            )
        except StorageFault as e:
            logger.warning(f"Directory verification failed, treating as no match: {e}")
            log_mention_resolution("structured", len(mentions), 0, degraded=True)
            return []

        resolved = [
            ResolvedMention(mention=m, internal_id=m.internal_id)
            for m in mentions
            if m.internal_id in verified
        ]
        log_mention_resolution("structured", len(mentions), len(resolved))
        return resolved

    async def resolve_plain(self, mentions: Sequence[PlainMention]) -> list[ResolvedMention]:
        """Match plain handles against registered usernames.

        Order of ``mentions`` is preserved. When several identities share a
        username, the first returned by the store wins.
        """
        if not mentions:
            return []

        try:
            rows = await self._store.lookup_by_usernames([m.handle for m in mentions])
        except StorageFault as e:
            logger.warning(f"Username lookup failed, treating as no match: {e}")
            log_mention_resolution("plain", len(mentions), 0, degraded=True)
            return []

        by_username: dict[str, str] = {}
        for username, uin in rows:
            by_username.setdefault(username.lower(), uin)

        resolved = [
            ResolvedMention(mention=m, internal_id=by_username[m.handle])
            for m in mentions
            if m.handle in by_username
        ]
        log_mention_resolution("plain", len(mentions), len(resolved))
        return resolved

    async def resolve_mentions(self, mentions: MentionSet) -> list[ResolvedMention]:
        """Resolve both mention families concurrently.

        Returns:
            Resolved structured mentions followed by resolved plain mentions
        """
        structured, plain = await asyncio.gather(
            self.verify_structured(mentions.structured),
            self.resolve_plain(mentions.plain),
        )
        return structured + plain
