"""Typed models for Cloud Identity Groups API payloads."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from roster.models import normalize_identity


class Membership(BaseModel):
    """One (group, member) relationship as reported by the directory.

    membership_ref is the resource name
    ``groups/{group_id}/memberships/{membership_id}`` and is the handle
    needed to delete exactly this relationship.
    """

    member_id: str
    membership_ref: Optional[str] = None


def parse_membership(raw: dict) -> Optional[Membership]:
    """
    Flatten a raw membership dict into a Membership.

    Args:
        raw: Membership resource from a list response

    Returns:
        Membership, or None if the entry has no preferredMemberKey.id
        (e.g. a nested group without an email key)
    """
    key = raw.get("preferredMemberKey") or {}
    member_id = key.get("id")
    if not member_id:
        return None
    return Membership(member_id=normalize_identity(member_id), membership_ref=raw.get("name"))
