"""Identities that automated runs must never add or remove."""
from typing import Iterable, Optional

from roster.models import normalize_identity
from shared.log import create_logger

_, _, log_info, _, _ = create_logger("Excluded")


class ExcludedMembers:
    """Excluded-identity source.

    Args:
        identities: Identities to protect (admins, group owners, service accounts)
    """

    def __init__(self, identities: Optional[Iterable[str]] = None):
        self._identities = frozenset(
            normalize_identity(i) for i in (identities or ()) if i and i.strip()
        )

    @classmethod
    def from_config(cls, config) -> "ExcludedMembers":
        return cls(config.excluded_member_set)

    def load(self) -> set[str]:
        if not self._identities:
            log_info("No excluded identities configured")
        else:
            log_info(f"Loaded {len(self._identities)} excluded identities")
        return set(self._identities)
