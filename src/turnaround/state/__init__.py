"""Commit-graph persistence for Turnaround projects."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .errors import MissingStateError, StateError
from .models import Branch, Commit, FileSnapshot, Project, ProjectGraph, utc_now

DEFAULT_STATE_DIRNAME = ".turnaround"
GRAPH_FILENAME = "graph.json"


class GraphRepository:
    """Manage the persistence of a project's commit graph."""

    def __init__(self, base_dirname: str = DEFAULT_STATE_DIRNAME) -> None:
        """Initialize the repository with an optional base directory name.

        Args:
            base_dirname: Name of the directory that stores project metadata.
        """
        self._base_dirname = base_dirname

    @property
    def base_dirname(self) -> str:
        """Return the directory name used for project metadata.

        Returns:
            str: Name of the directory that stores state artifacts.
        """
        return self._base_dirname

    def exists(self, root: Path) -> bool:
        """Return whether a commit graph has been written for ``root``."""
        return self.graph_path(root).exists()

    def load(self, root: Path) -> ProjectGraph:
        """Load the commit graph for the given project root.

        Args:
            root: Root path of the project.

        Returns:
            ProjectGraph: Deserialized graph for the project.

        Raises:
            MissingStateError: If the project has not been initialised.
            StateError: If stored data cannot be parsed.
        """
        path = self.graph_path(root)
        if not path.exists():
            raise MissingStateError(f"No Turnaround project found at {root}")

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StateError(f"Invalid commit graph data: {exc}") from exc

        try:
            return ProjectGraph.model_validate(data)
        except ValidationError as exc:
            raise StateError(f"Invalid commit graph structure: {exc}") from exc

    def save(self, root: Path, graph: ProjectGraph) -> None:
        """Persist the commit graph atomically.

        The payload is written to a temporary file in the state directory and
        moved over the previous graph, so readers see either the old or the new
        graph and never a partial one.

        Args:
            root: Root path of the project.
            graph: Graph model to serialize to disk.
        """
        directory = self.initialize(root)
        graph.updated_at = utc_now()
        payload = graph.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=".graph-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, directory / GRAPH_FILENAME)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def initialize(self, root: Path) -> Path:
        """Prepare the metadata directories for a project.

        Args:
            root: Root path of the project.

        Returns:
            Path: Directory containing the state artifacts.
        """
        directory = self.state_dir(root)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "objects").mkdir(exist_ok=True)
        return directory

    def state_dir(self, root: Path) -> Path:
        """Return the path to the state directory for a project."""
        return root / self._base_dirname

    def graph_path(self, root: Path) -> Path:
        return self.state_dir(root) / GRAPH_FILENAME


__all__ = [
    "GraphRepository",
    "DEFAULT_STATE_DIRNAME",
    "GRAPH_FILENAME",
    "Project",
    "Branch",
    "Commit",
    "FileSnapshot",
    "ProjectGraph",
    "StateError",
    "MissingStateError",
]
