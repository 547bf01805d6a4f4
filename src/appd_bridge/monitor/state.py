"""
File-backed state for tracked violations.

The state file is the only record of which incidents already have a
ticket. Its format is a flat JSON object keyed by incident id:

    {"100": {"jiraKey": "TAF-1", "status": "OPEN", "lastChecked": 1718000000000}}

Loading is best-effort: a missing, unreadable or corrupt file yields an
empty state rather than stopping the monitor. Saving writes a temp file in
the same directory and renames it over the target, so readers never see a
half-written file. Save failures are logged and the in-memory state keeps
going.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from appd_bridge.exceptions import StatePersistenceError
from appd_bridge.types import IncidentId, TrackedViolation

logger = logging.getLogger(__name__)

TrackedState = dict[IncidentId, TrackedViolation]


class StateStore:
    """
    JSON file store for TrackedViolation records.

    Example:
        store = StateStore(Path("violations-state.json"))
        state = store.load()
        state["100"] = TrackedViolation(jira_key="TAF-1", status="OPEN")
        store.save(state)
    """

    def __init__(self, path: Path) -> None:
        """
        Args:
            path: Location of the state file
        """
        self.path = path

    def load(self) -> TrackedState:
        """
        Read persisted state.

        Returns:
            Mapping of incident id to record. Empty on any problem.
        """
        try:
            state = self._read()
        except StatePersistenceError as e:
            logger.error("Error loading state: %s", e)
            return {}
        logger.info("Loaded state with %d tracked violations", len(state))
        return state

    def _read(self) -> TrackedState:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            raise StatePersistenceError(self.path, str(e)) from e
        if not isinstance(data, dict):
            raise StatePersistenceError(self.path, "top-level value is not an object")

        state: TrackedState = {}
        for incident_id, entry in data.items():
            try:
                state[str(incident_id)] = TrackedViolation.from_dict(entry)
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed state entry %s: %r", incident_id, entry)
        return state

    def save(self, state: TrackedState) -> bool:
        """
        Persist the full state.

        Returns:
            True on success, False if the write failed (already logged)
        """
        try:
            self._write(state)
        except StatePersistenceError as e:
            logger.error("Error saving state: %s", e)
            return False
        return True

    def _write(self, state: TrackedState) -> None:
        payload = json.dumps(
            {incident_id: record.to_dict() for incident_id, record in state.items()},
            indent=2,
        )
        directory = self.path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StatePersistenceError(self.path, str(e)) from e
