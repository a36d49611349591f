"""Identity resolution for reporters and mentioned subjects.

Trust differs per mention source:
- Structured mentions come from a live directory selection and only get
  an existence check against the directory
- Plain mentions are free text and must positively match a registered
  username

Components:
- IdentityResolver: Reporter hash lookup plus per-format mention resolution
"""

from .identity import IdentityResolver, ResolvedMention, hash_contact_address

__all__ = ["IdentityResolver", "ResolvedMention", "hash_contact_address"]
