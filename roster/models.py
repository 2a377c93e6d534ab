"""Data model shared by the roster store, the directory client and the engine."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RosterRow:
    """One declared membership interval.

    Attributes:
        group_id: Target group identity (group email)
        member_id: Member identity (member email)
        valid_from: Start of the validity window, timezone-aware, inclusive
        valid_to: End of the validity window, timezone-aware, inclusive
        membership_ref: Directory handle from a previous add, or None
        row_index: 1-based physical row in the roster file (header is row 1)
    """
    group_id: str
    member_id: str
    valid_from: datetime
    valid_to: datetime
    membership_ref: Optional[str] = None
    row_index: int = 0

    def is_active(self, now: datetime) -> bool:
        return self.valid_from <= now <= self.valid_to


@dataclass(frozen=True)
class DiffResult:
    """Membership changes needed to turn actual state into desired state."""
    to_add: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass
class SyncResult:
    """What actually changed in one group during one run.

    Attributes:
        group_id: Group identity as declared in the roster
        added: Members successfully added
        removed: Members successfully removed (or found already absent)
        added_refs: member_id -> membership ref for each added member
    """
    group_id: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    added_refs: dict[str, str] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


def normalize_identity(value: str) -> str:
    """Canonical form for comparing email identities ("Alice@X.com" == "alice@x.com")."""
    return value.strip().casefold()
