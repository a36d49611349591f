"""Case token issuance and format validation.

A case token is the only handle a reporter gets back. Whoever holds it
can read the report's status, so it must be unguessable:

    CASE-7KQ2-M9XD-4HTP

Format: configured prefix, then three dash-separated groups of four
symbols from a 32-symbol alphabet without 0/O and 1/I (60 random bits).
Uniqueness is enforced by the reports.case_token unique constraint.
"""

import re
import secrets

from ..config import get_settings

TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TOKEN_GROUPS = 3
TOKEN_GROUP_SIZE = 4


class CaseTokenService:
    """Generates case tokens and checks their format."""

    def __init__(self, prefix: str | None = None):
        self.prefix = prefix or get_settings().case_token_prefix
        group = f"[{re.escape(TOKEN_ALPHABET)}]{{{TOKEN_GROUP_SIZE}}}"
        self._pattern = re.compile(
            rf"{re.escape(self.prefix)}(?:-{group}){{{TOKEN_GROUPS}}}"
        )

    def generate(self) -> str:
        """Generate a new token from a cryptographically secure source."""
        groups = (
            "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_GROUP_SIZE))
            for _ in range(TOKEN_GROUPS)
        )
        return "-".join([self.prefix, *groups])

    def is_valid(self, token: str | None) -> bool:
        """Check the token format. Says nothing about whether it exists."""
        if not token or not isinstance(token, str):
            return False
        return self._pattern.fullmatch(token) is not None


_token_service: CaseTokenService | None = None


def get_case_token_service() -> CaseTokenService:
    """Get the case token service singleton."""
    global _token_service
    if _token_service is None:
        _token_service = CaseTokenService()
    return _token_service
