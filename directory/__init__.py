"""
Remote group directory (Cloud Identity Groups) access for Roster2Groups.

Public API:
    DirectoryClient    -- resolve group, list/add/remove members
    Membership         -- member identity + membership ref
"""

from directory.client import DirectoryClient
from directory.models import Membership, parse_membership

__all__ = ["DirectoryClient", "Membership", "parse_membership"]
