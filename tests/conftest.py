"""
Shared pytest fixtures for Roster2Groups tests.

Provides reusable fixtures for:
- A mock directory client (resolve / list / add / remove)
- Roster rows and on-disk roster / settings stores
- A fake monotonic clock + sleep pair for coordinator timing
- Configuration dictionaries

The directory is mocked with unittest.mock so no network access is needed.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from directory.models import Membership
from roster.models import RosterRow


NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

ROSTER_HEADER = "group,member,valid_from,valid_to,membership_ref\n"


def make_row(group_id, member_id, valid_from=None, valid_to=None, row_index=2, membership_ref=None):
    """Build a RosterRow active around NOW unless bounds are given."""
    return RosterRow(
        group_id=group_id,
        member_id=member_id,
        valid_from=valid_from or NOW - timedelta(days=1),
        valid_to=valid_to or NOW + timedelta(days=1),
        membership_ref=membership_ref,
        row_index=row_index,
    )


@pytest.fixture
def now():
    """Reference time used across engine and orchestrator tests."""
    return NOW


@pytest.fixture
def row_factory():
    """The make_row helper, for tests that build their own rows."""
    return make_row


# =============================================================================
# Directory Mock Fixtures
# =============================================================================

class FakeDirectory:
    """In-memory directory keyed by group email.

    Behaves like DirectoryClient: resolve_group returns 'groups/<email>' for
    known groups, add_member returns a Membership with a generated ref,
    remove_member returns True. Individual members can be made to fail via
    fail_add / fail_remove.
    """

    def __init__(self, groups=None):
        self.groups = {g: set(m) for g, m in (groups or {}).items()}
        self.fail_add = set()
        self.fail_remove = set()
        self.calls = []

    def resolve_group(self, group_id):
        self.calls.append(('resolve_group', group_id))
        return f"groups/{group_id}" if group_id in self.groups else None

    def _key(self, group_name):
        return group_name.split('/', 1)[1]

    def list_members(self, group_name):
        self.calls.append(('list_members', group_name))
        return [
            Membership(member_id=m, membership_ref=f"{group_name}/memberships/{m}")
            for m in sorted(self.groups[self._key(group_name)])
        ]

    def add_member(self, group_name, member_id):
        self.calls.append(('add_member', group_name, member_id))
        if member_id in self.fail_add:
            return None
        self.groups[self._key(group_name)].add(member_id)
        return Membership(member_id=member_id, membership_ref=f"{group_name}/memberships/{member_id}")

    def remove_member(self, group_name, member_id):
        self.calls.append(('remove_member', group_name, member_id))
        if member_id in self.fail_remove:
            return False
        self.groups[self._key(group_name)].discard(member_id)
        return True

    def mutating_calls(self):
        return [c for c in self.calls if c[0] in ('add_member', 'remove_member')]


@pytest.fixture
def fake_directory():
    """Empty FakeDirectory; tests populate .groups as needed."""
    return FakeDirectory()


@pytest.fixture
def mock_directory():
    """
    MagicMock directory client with benign defaults.

    Provides:
        - resolve_group(): 'groups/abc'
        - list_members(): []
        - add_member(): Membership with a ref
        - remove_member(): True
    """
    directory = MagicMock()
    directory.resolve_group.return_value = "groups/abc"
    directory.list_members.return_value = []
    directory.add_member.side_effect = lambda group, member: Membership(
        member_id=member, membership_ref=f"{group}/memberships/{member}"
    )
    directory.remove_member.return_value = True
    return directory


# =============================================================================
# Clock Fixtures
# =============================================================================

class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def sample_rows():
    """Two groups, three active rows, one expired row."""
    return [
        make_row("team-a@example.com", "alice@example.com", row_index=2),
        make_row("team-a@example.com", "bob@example.com", row_index=3),
        make_row(
            "team-a@example.com", "carol@example.com",
            valid_from=NOW - timedelta(days=30), valid_to=NOW - timedelta(days=1),
            row_index=4,
        ),
        make_row("team-b@example.com", "dave@example.com", row_index=5),
    ]


@pytest.fixture
def roster_file(tmp_path):
    """Roster CSV with one active and one expired row for team-a."""
    path = tmp_path / "roster.csv"
    path.write_text(
        ROSTER_HEADER
        + "team-a@example.com,alice@example.com,2020-01-01T00:00:00Z,2099-12-31T23:59:59Z,\n"
        + "team-a@example.com,bob@example.com,2024-01-01T00:00:00Z,2024-12-31T23:59:59Z,\n"
    )
    return path


@pytest.fixture
def settings_file(tmp_path):
    """Settings JSON with the maintenance flag off."""
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"maintenance": "OFF"}))
    return path


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def valid_config_dict(tmp_path, roster_file, settings_file):
    """Minimal valid configuration pointing at tmp stores."""
    return {
        "roster_path": str(roster_file),
        "settings_path": str(settings_file),
        "access_token": "ya29.test-token-abcdef",
        "data_dir": str(tmp_path / "data"),
    }


@pytest.fixture(autouse=True)
def clear_r2g_env(monkeypatch):
    """Keep R2G_* variables from the developer's shell out of config tests."""
    for key in list(os.environ):
        if key.startswith("R2G_"):
            monkeypatch.delenv(key, raising=False)
