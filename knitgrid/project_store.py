"""Project persistence for the knitting chart engine.

This module handles loading and saving whole project records to/from a JSON
file holding one object keyed by project id.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

from knitgrid.models import PROJECTS_FILE, ProjectState

logger = logging.getLogger(__name__)


def _project_from_record(project_id: str, record) -> ProjectState:
    """Deserialize one record; a corrupt record starts over as an empty project."""
    try:
        return ProjectState.from_dict(record)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Project %s is corrupt, starting from empty: %s", project_id, e)

    project = ProjectState(uuid=project_id)
    name = record.get("name") if isinstance(record, dict) else None
    if isinstance(name, str):
        project.name = name
    return project


class ProjectRepository:
    """Whole-record load/save of projects in a JSON key-value file."""

    def __init__(self, path: Path = PROJECTS_FILE):
        """Initialize the repository.

        Args:
            path: Path to the projects file (defaults to ~/.knitgrid_projects.json)
        """
        self.path = Path(path)

    def _read_all(self) -> dict:
        """Read every raw project record, treating a corrupt file as empty."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read projects from %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning(
                "Ignoring projects file %s: expected an object, got %s",
                self.path,
                type(data).__name__,
            )
            return {}
        return data

    def _write_all(self, records: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)

    def load(self, project_id: str) -> Optional[ProjectState]:
        """Load one project.

        Returns:
            ProjectState, or None when missing. A corrupt record loads as an
            empty project with the same id.
        """
        record = self._read_all().get(project_id)
        if record is None:
            return None
        return _project_from_record(project_id, record)

    def save(self, project_id: str, project: ProjectState) -> Tuple[bool, Optional[str]]:
        """Replace one project record.

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        try:
            records = self._read_all()
            records[project_id] = project.to_dict()
            self._write_all(records)
            logger.debug("Saved project %s to %s", project_id, self.path)
            return True, None
        except (OSError, TypeError, ValueError) as e:
            logger.error("Could not save project %s: %s", project_id, e)
            return False, str(e)

    def delete(self, project_id: str) -> bool:
        """Remove a project record. False if it did not exist or could not be written."""
        records = self._read_all()
        if project_id not in records:
            return False
        del records[project_id]
        try:
            self._write_all(records)
        except OSError as e:
            logger.error("Could not delete project %s: %s", project_id, e)
            return False
        return True

    def list_ids(self) -> "list[str]":
        """Ids of all stored projects, sorted."""
        return sorted(self._read_all())


class InMemoryProjectRepository:
    """Repository keeping serialized records in memory.

    Records still go through to_dict()/from_dict() so callers get the same
    copy semantics as the file-backed store.
    """

    def __init__(self):
        self._records: "dict[str, dict]" = {}

    def load(self, project_id: str) -> Optional[ProjectState]:
        record = self._records.get(project_id)
        if record is None:
            return None
        return _project_from_record(project_id, json.loads(json.dumps(record)))

    def save(self, project_id: str, project: ProjectState) -> Tuple[bool, Optional[str]]:
        self._records[project_id] = json.loads(json.dumps(project.to_dict()))
        return True, None

    def delete(self, project_id: str) -> bool:
        return self._records.pop(project_id, None) is not None

    def list_ids(self) -> "list[str]":
        return sorted(self._records)
