"""Shared fixtures for Turnaround tests."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import pytest

from turnaround.vcs import ProjectSession


def write_file(root: Path, relative: str, data: bytes | str) -> Path:
    """Write ``data`` below ``root``, creating parent directories.

    Args:
        root: Project root.
        relative: Project-relative POSIX path.
        data: Text or bytes to write.

    Returns:
        Path: The written file.
    """
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, str):
        path.write_text(data, encoding="utf-8")
    else:
        path.write_bytes(data)
    return path


def _rational(value: float) -> dict[str, Any]:
    return {"OTIO_SCHEMA": "RationalTime.1", "value": value, "rate": 24.0}


def otio_document(clips: list[dict[str, Any]], *, name: str = "Cut", audio: bool = False) -> str:
    """Return a minimal OpenTimelineIO timeline with one video track.

    Args:
        clips: Clip specs with ``name``, ``url``, ``start`` and ``duration`` (frames at 24 fps).
        name: Timeline name.
        audio: Add an empty audio track after the video track.

    Returns:
        str: Serialized OTIO JSON.
    """
    children = [
        {
            "OTIO_SCHEMA": "Clip.2",
            "name": clip["name"],
            "media_reference": {
                "OTIO_SCHEMA": "ExternalReference.1",
                "target_url": clip["url"],
            },
            "source_range": {
                "OTIO_SCHEMA": "TimeRange.1",
                "start_time": _rational(clip["start"]),
                "duration": _rational(clip["duration"]),
            },
        }
        for clip in clips
    ]
    tracks = [{"OTIO_SCHEMA": "Track.1", "name": "V1", "kind": "Video", "children": children}]
    if audio:
        tracks.append({"OTIO_SCHEMA": "Track.1", "name": "A1", "kind": "Audio", "children": []})
    return json.dumps(
        {
            "OTIO_SCHEMA": "Timeline.1",
            "name": name,
            "tracks": {"OTIO_SCHEMA": "Stack.1", "name": "tracks", "children": tracks},
        }
    )


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Return a project directory holding a timeline and two media files.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    root = tmp_path / "project"
    root.mkdir()
    write_file(
        root,
        "cut.otio",
        otio_document([{"name": "Intro", "url": "media/a.mov", "start": 0, "duration": 48}]),
    )
    write_file(root, "media/a.mov", b"video-a")
    write_file(root, "media/b.wav", b"audio-b")
    return root


@pytest.fixture
def session(project_root: Path) -> ProjectSession:
    """Return a session on an initialised project.

    Args:
        project_root: Project directory fixture.
    """
    return ProjectSession.init(project_root)


@pytest.fixture
def cli_env(tmp_path: Path) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    return env
