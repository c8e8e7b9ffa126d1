"""Email address helpers."""

from typing import Optional


def normalize_email(email: Optional[str]) -> str:
    """Trim and lower-case an email address; ``None`` becomes an empty string.

    Every stored email (accounts, invites, tokens) goes through this so that
    lookups compare like with like.
    """
    return (email or "").strip().lower()
