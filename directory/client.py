"""
directory.client: synchronous Cloud Identity Groups API client.

Design notes:
- One httpx.Client per run. Caller must call close() (or use it as a
  context manager) when done.
- resolve_group / list_members failures are fatal to the run: without the
  group handle or a complete member list there is no trustworthy actual state.
- add_member / remove_member never raise for API failures. They log the
  failure with its transient/permanent classification and report it through
  the return value, so the engine can drop that member from the result.
- Authentication is out of scope: the caller supplies a bearer token.
"""

from __future__ import annotations

from typing import Optional

import httpx

from directory.models import Membership, parse_membership
from validation.errors import DirectoryError, classify_exception
from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Directory")

MEMBER_ROLE = "MEMBER"


class DirectoryClient:
    """
    Cloud Identity Groups client covering the four calls reconciliation needs.

    Usage::

        with DirectoryClient(config.directory_url, config.access_token) as client:
            group = client.resolve_group("team-a@example.com")
            members = client.list_members(group)
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 30.0,
        page_size: int = 100,
    ) -> None:
        """
        Create the directory client.

        Args:
            base_url:     API root, e.g. ``https://cloudidentity.googleapis.com/v1``.
                          Trailing slashes are stripped automatically.
            access_token: OAuth bearer token with groups scope.
            timeout:      Total request timeout in seconds (default 30). Connect
                          timeout is fixed at 5 seconds.
            page_size:    Memberships requested per listing page.
        """
        self._base = base_url.rstrip("/")
        self._page_size = page_size
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout, connect=5.0),
        )
        log_debug(f"DirectoryClient initialised, base={self._base}")

    def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        self._client.close()

    def __enter__(self) -> "DirectoryClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        try:
            return self._client.get(f"{self._base}/{path}", params=params)
        except httpx.TransportError as exc:
            raise DirectoryError(f"Directory unreachable ({path}): {exc}") from exc

    def resolve_group(self, group_id: str) -> Optional[str]:
        """
        Look up a group's resource name by its email.

        Args:
            group_id: Group email address

        Returns:
            Resource name ``groups/{id}``, or None if the group does not exist
            (or is not visible to the caller).

        Raises:
            DirectoryError: Directory unreachable or unexpected error status
        """
        resp = self._get("groups:lookup", params={"groupKey.id": group_id})
        if resp.status_code in (403, 404):
            log_warn(f"Group lookup for {group_id} returned HTTP {resp.status_code}")
            return None
        if resp.is_error:
            raise DirectoryError(
                f"Group lookup failed for {group_id}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        name = resp.json().get("name")
        if name:
            log_debug(f"Resolved group {group_id} -> {name}")
        return name or None

    def list_members(self, group_name: str) -> list[Membership]:
        """
        List every membership of a group, following pagination.

        Args:
            group_name: Resource name from resolve_group()

        Returns:
            Fully materialised Membership list

        Raises:
            DirectoryError: Any page failed
        """
        members: list[Membership] = []
        page_token: Optional[str] = None

        while True:
            params = {"pageSize": self._page_size}
            if page_token:
                params["pageToken"] = page_token

            resp = self._get(f"{group_name}/memberships", params=params)
            if resp.is_error:
                raise DirectoryError(
                    f"Listing members of {group_name} failed: HTTP {resp.status_code}",
                    status_code=resp.status_code,
                )

            body = resp.json()
            for raw in body.get("memberships") or []:
                membership = parse_membership(raw)
                if membership is not None:
                    members.append(membership)

            page_token = body.get("nextPageToken")
            if not page_token:
                break
            log_trace(f"Fetching next member page of {group_name}")

        log_debug(f"{group_name} has {len(members)} members")
        return members

    def add_member(self, group_name: str, member_id: str) -> Optional[Membership]:
        """
        Add a member with the MEMBER role.

        Args:
            group_name: Resource name from resolve_group()
            member_id: Member email address

        Returns:
            Membership carrying the new membership ref, or None on failure
            (including an operation that finished without a membership name)
        """
        body = {
            "preferredMemberKey": {"id": member_id},
            "roles": [{"name": MEMBER_ROLE}],
        }
        try:
            resp = self._client.post(f"{self._base}/{group_name}/memberships", json=body)
            resp.raise_for_status()
        except (httpx.HTTPStatusError, httpx.TransportError) as exc:
            error_class = classify_exception(exc)
            log_warn(f"Add {member_id} to {group_name} failed ({error_class.__name__}): {exc}")
            return None

        operation = resp.json()
        if operation.get("error"):
            log_warn(f"Add {member_id} to {group_name} failed: {operation['error']}")
            return None

        membership_ref = (operation.get("response") or {}).get("name")
        if not membership_ref:
            log_warn(f"Add {member_id} to {group_name} returned no membership name")
            return None

        log_info(f"Added {member_id} to {group_name}")
        return Membership(member_id=member_id, membership_ref=membership_ref)

    def lookup_membership(self, group_name: str, member_id: str) -> Optional[str]:
        """
        Find the membership ref for (group, member).

        Returns:
            Membership resource name, or None if the member is not in the group

        Raises:
            httpx.HTTPStatusError: Lookup failed for a reason other than 404
            httpx.TransportError: Directory unreachable
        """
        resp = self._client.get(
            f"{self._base}/{group_name}/memberships:lookup",
            params={"memberKey.id": member_id},
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json().get("name") or None

    def remove_member(self, group_name: str, member_id: str) -> bool:
        """
        Remove a member from a group.

        Returns:
            True if removed or already absent, False on failure
        """
        try:
            membership_ref = self.lookup_membership(group_name, member_id)
            if membership_ref is None:
                log_info(f"{member_id} not found in {group_name}, treating as already removed")
                return True

            resp = self._client.delete(f"{self._base}/{membership_ref}")
            if resp.status_code == 404:
                log_info(f"{membership_ref} already gone")
                return True
            resp.raise_for_status()
        except (httpx.HTTPStatusError, httpx.TransportError) as exc:
            error_class = classify_exception(exc)
            log_warn(f"Remove {member_id} from {group_name} failed ({error_class.__name__}): {exc}")
            return False

        log_info(f"Removed {member_id} from {group_name}")
        return True
