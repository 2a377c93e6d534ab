"""
CSV-backed roster store.

Layout (row 1 is the header, data starts on row 2):

    group,member,valid_from,valid_to,membership_ref
    team-a@example.com,alice@example.com,2025-01-01T00:00:00Z,2025-12-31T23:59:59Z,

Rows missing a group or member, or with an unparseable timestamp, are skipped.
Write-back rewrites the file atomically (tmp + os.replace) and only touches the
membership_ref column of rows returned by the last load().
"""

import csv
import os
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from roster.models import RosterRow, SyncResult, normalize_identity
from validation.errors import ConfigurationError
from shared.log import create_logger

_, log_debug, log_info, log_warn, _ = create_logger("Roster")

COLUMNS = ('group', 'member', 'valid_from', 'valid_to', 'membership_ref')
DATA_START_ROW = 2


def _parse_iso(text: str) -> Optional[datetime]:
    # fromisoformat only accepts basic-format YYYYMMDD from 3.11 on
    if len(text) == 8 and text.isdigit():
        try:
            return datetime.strptime(text, '%Y%m%d')
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a roster timestamp into a timezone-aware datetime.

    Accepts:
    - datetime objects
    - ISO-8601 strings, with or without offset ("Z" allowed), date-only allowed
    - Epoch seconds as int, float or numeric string

    ISO wins over epoch, so an all-digit "20251231" is a basic-format date.
    Naive values are taken as UTC.

    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool) or value is None:
        return None
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = _parse_iso(text)
        if parsed is None:
            try:
                return datetime.fromtimestamp(float(text), tz=timezone.utc)
            except (ValueError, OverflowError, OSError):
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RosterStore:
    """Loads roster rows and writes membership refs back.

    Args:
        path: Path to the roster CSV file
    """

    def __init__(self, path: str):
        self.path = path

    def _read_raw(self) -> list[list[str]]:
        try:
            with open(self.path, 'r', newline='', encoding='utf-8-sig') as f:
                return list(csv.reader(f))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Roster not found: {self.path}") from e

    def _header_index(self, header: list[str]) -> dict[str, int]:
        normalized = [h.strip().lower() for h in header]
        missing = [c for c in COLUMNS[:4] if c not in normalized]
        if missing:
            raise ConfigurationError(
                f"Roster {self.path} header is missing columns: {', '.join(missing)}"
            )
        return {c: normalized.index(c) for c in COLUMNS if c in normalized}

    def load(self) -> list[RosterRow]:
        """
        Load all valid roster rows.

        Returns:
            RosterRow list in file order. Malformed rows are skipped.

        Raises:
            ConfigurationError: File missing or header lacks required columns
        """
        raw = self._read_raw()
        if len(raw) < DATA_START_ROW:
            log_info("Roster has no data rows")
            return []

        index = self._header_index(raw[0])
        rows = []

        for offset, record in enumerate(raw[1:]):
            row_index = DATA_START_ROW + offset

            def cell(column: str) -> str:
                i = index.get(column)
                if i is None or i >= len(record):
                    return ''
                return record[i].strip()

            group_id = normalize_identity(cell('group'))
            member_id = normalize_identity(cell('member'))
            if not group_id or not member_id:
                continue

            valid_from = parse_timestamp(cell('valid_from'))
            valid_to = parse_timestamp(cell('valid_to'))
            if valid_from is None or valid_to is None:
                log_warn(
                    f"Row {row_index} skipped, invalid timestamps "
                    f"(from={cell('valid_from')!r}, to={cell('valid_to')!r})"
                )
                continue

            rows.append(RosterRow(
                group_id=group_id,
                member_id=member_id,
                valid_from=valid_from,
                valid_to=valid_to,
                membership_ref=cell('membership_ref') or None,
                row_index=row_index,
            ))

        log_info(f"Loaded {len(rows)} valid roster rows")
        return rows

    def write_back(self, rows: Iterable[RosterRow], results: Iterable[SyncResult]) -> int:
        """
        Record membership refs for added members and clear them for removed ones.

        For each change, the first loaded row matching (group, member) is updated.

        Args:
            rows: Rows returned by load() in this run
            results: Per-group SyncResults

        Returns:
            Number of cells changed
        """
        first_row: dict[tuple[str, str], int] = {}
        for row in rows:
            first_row.setdefault((row.group_id, row.member_id), row.row_index)

        updates: dict[int, str] = {}
        for result in results:
            for member_id in result.added:
                row_index = first_row.get((result.group_id, member_id))
                if row_index is not None:
                    updates[row_index] = result.added_refs.get(member_id, '')
            for member_id in result.removed:
                row_index = first_row.get((result.group_id, member_id))
                if row_index is not None:
                    updates[row_index] = ''

        if not updates:
            return 0

        raw = self._read_raw()
        header = raw[0]
        normalized = [h.strip().lower() for h in header]
        if 'membership_ref' not in normalized:
            header.append('membership_ref')
            normalized.append('membership_ref')
        ref_col = normalized.index('membership_ref')

        changed = 0
        for row_index, value in updates.items():
            record = raw[row_index - 1]
            if len(record) <= ref_col:
                record.extend([''] * (ref_col + 1 - len(record)))
            if record[ref_col] != value:
                record[ref_col] = value
                changed += 1
                log_debug(f"Row {row_index} membership_ref set to {value!r}")

        self._write_raw(raw)
        log_info(f"Wrote {changed} membership ref update(s) to roster")
        return changed

    def _write_raw(self, raw: list[list[str]]) -> None:
        tmp_path = self.path + '.tmp'
        with open(tmp_path, 'w', newline='', encoding='utf-8') as f:
            csv.writer(f).writerows(raw)
        os.replace(tmp_path, self.path)
