"""Read-side view of registrations for the page and the live feed."""

import logging
from typing import Any, Dict, List, Mapping

from .errors import StoreError
from .store import RegistrationStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "timestamp", "name", "email")
OPTIONAL_FIELDS = ("is_speaker", "topic", "profile_pic")


def to_entry(row: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert a stored row to its JSON shape.

    Optional fields missing from the row (older schema) are left out, and
    a field that cannot be converted is dropped instead of failing the row.
    """
    entry = {field: row[field] for field in REQUIRED_FIELDS}
    for field in OPTIONAL_FIELDS:
        if field not in row:
            continue
        value = row[field]
        if field == "is_speaker":
            try:
                value = bool(int(value)) if value is not None else False
            except (TypeError, ValueError):
                logger.warning(f"Dropping unreadable is_speaker value for registration id={row['id']}")
                continue
        entry[field] = value
    return entry


class SnapshotReader:
    """Turns store reads into snapshots. Never raises."""

    def __init__(self, store: RegistrationStore):
        self._store = store

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """The full current list of registrations, newest first."""
        return {"registrations": self._read(self._store.list_all, "registrations")}

    def speakers(self) -> List[Dict[str, Any]]:
        return self._read(self._store.list_speakers, "speakers")

    def _read(self, query, label: str) -> List[Dict[str, Any]]:
        try:
            rows = query()
        except StoreError as e:
            logger.error(f"Failed to read {label}: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error reading {label}: {type(e).__name__}: {e}", exc_info=True)
            return []

        entries = []
        for row in rows:
            try:
                entries.append(to_entry(row))
            except KeyError as e:
                logger.warning(f"Skipping registration row missing {e}")
        return entries
