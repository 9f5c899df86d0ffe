"""Display-name resolution for members shown in listings."""

from __future__ import annotations

import re
from typing import Any, Optional

DEFAULT_MEMBER_NAME = "User"
UNASSIGNED_LEAD = "Unassigned"


def _field(member: Any, name: str) -> Optional[str]:
    if member is None:
        return None
    if isinstance(member, dict):
        return member.get(name)
    return getattr(member, name, None)


def humanize_email(email: str) -> str:
    """``john.doe@example.com`` → ``John Doe``."""
    local = email.split("@")[0]
    words = re.sub(r"[._-]", " ", local).split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def display_name(member: Any = None, fallback_email: Optional[str] = None) -> str:
    """
    Resolve a member's display name.

    Priority: full_name → humanized email local part → ``"User"``.
    ``member`` may be a record, a dict row or None.
    """
    full_name = _field(member, "full_name")
    if full_name:
        return full_name
    email = _field(member, "email") or fallback_email
    if email:
        return humanize_email(email)
    return DEFAULT_MEMBER_NAME


def lead_display_name(lead: Any = None) -> str:
    """Project lead label. Priority: full_name → email → ``"Unassigned"``."""
    return _field(lead, "full_name") or _field(lead, "email") or UNASSIGNED_LEAD
