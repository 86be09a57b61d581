"""Configuration models describing Turnaround settings."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_PROJECT_EXTENSIONS = [
    "prproj",
    "drp",
    "fcpxml",
    "otio",
    "xml",
    "edl",
    "aaf",
    "sesx",
    "als",
    "flp",
    "ptx",
]

DEFAULT_MEDIA_EXTENSIONS = [
    # Video
    "mp4",
    "mov",
    "avi",
    "mkv",
    "mxf",
    "webm",
    "wmv",
    "flv",
    "m4v",
    "mpg",
    "mpeg",
    "ts",
    "r3d",
    "braw",
    "ari",
    # Audio
    "wav",
    "mp3",
    "aac",
    "flac",
    "ogg",
    "m4a",
    "aiff",
    "aif",
    "wma",
    # Images
    "png",
    "jpg",
    "jpeg",
    "tif",
    "tiff",
    "exr",
    "dpx",
    "bmp",
    "gif",
    "webp",
    "psd",
    "psb",
    "svg",
    # Subtitles / grading data
    "srt",
    "ass",
    "lut",
    "cube",
]


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _normalize_extensions(values: Any) -> List[str]:
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple)):
        raise ValueError("extensions must be a list of strings")
    normalized: List[str] = []
    for value in values:
        if not isinstance(value, str):
            raise ValueError(f"extension must be a string, got {type(value).__name__}")
        ext = value.strip().lower().lstrip(".")
        if not ext:
            raise ValueError("extensions must not be empty")
        if "/" in ext or "\\" in ext or "." in ext:
            raise ValueError(f"{value!r} is not a bare file extension")
        if ext not in normalized:
            normalized.append(ext)
    return normalized


class TurnaroundBaseModel(BaseModel):
    """Shared configuration for Turnaround settings models."""

    model_config = ConfigDict(extra="forbid")


class TrackingOptions(TurnaroundBaseModel):
    """Options deciding which working-directory files are versioned.

    Extensions are stored lower-case without the leading dot, so ``.MOV``
    and ``mov`` name the same type. A type cannot be both a project and a
    media extension, since project files are always copied into the store.

    Attributes:
        project_extensions: Extensions of editing-project and timeline files.
        media_extensions: Extensions of media and auxiliary files.
        include_hidden: Whether dot-files and dot-directories are tracked.
        follow_symlinks: Whether symbolic links are followed during scans.
    """

    project_extensions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PROJECT_EXTENSIONS)
    )
    media_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_MEDIA_EXTENSIONS))
    include_hidden: bool = False
    follow_symlinks: bool = False

    @field_validator("project_extensions", "media_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, value: Any) -> List[str]:
        return _normalize_extensions(value)

    @model_validator(mode="after")
    def check_disjoint(self) -> "TrackingOptions":
        overlap = sorted(set(self.project_extensions) & set(self.media_extensions))
        if overlap:
            raise ValueError(
                f"extensions listed as both project and media types: {', '.join(overlap)}"
            )
        return self

    @property
    def tracked_extensions(self) -> List[str]:
        return [*self.project_extensions, *self.media_extensions]


class StoreOptions(TurnaroundBaseModel):
    """Snapshot store behavior.

    Attributes:
        full_copy_limit_mb: Media files above this size are recorded by hash only.
            Zero stores every file. Project files are always stored.
    """

    full_copy_limit_mb: int = Field(default=0, ge=0)


class BranchOptions(TurnaroundBaseModel):
    """Branch defaults.

    Attributes:
        default_branch: Name of the branch created by ``turnaround init``.
    """

    default_branch: str = "main"

    @field_validator("default_branch")
    @classmethod
    def strip_branch_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("default_branch must not be blank")
        return cleaned


class HistoryOptions(TurnaroundBaseModel):
    """History traversal defaults.

    Attributes:
        default_limit: Number of commits returned when no limit is given.
    """

    default_limit: int = Field(default=100, ge=0)


class TimelineOptions(TurnaroundBaseModel):
    """Timeline display settings.

    Attributes:
        default_frame_rate: Fallback rate for displaying times with an unknown rate.
    """

    default_frame_rate: float = Field(default=24.0, gt=0)


class WatchOptions(TurnaroundBaseModel):
    """Change notification and polling settings.

    Attributes:
        debounce_seconds: Quiet period before queued filesystem events are flushed.
        poll_interval_seconds: Interval between uncommitted-change polls.
        dismiss_cooldown_seconds: Time polls stay suppressed after a dismissal.
    """

    debounce_seconds: float = Field(default=0.5, gt=0)
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    dismiss_cooldown_seconds: float = Field(default=30.0, ge=0)


class LoggingSettings(TurnaroundBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level, case-insensitive.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=3, ge=0)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError(f"level must be a string, got {type(value).__name__}")
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class CLIOptions(TurnaroundBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
        history_limit: Default number of commits shown by ``turnaround log``.
    """

    quiet_default: bool = False
    summary_default: bool = False
    history_limit: int = Field(default=20, ge=1)


class TurnaroundConfig(TurnaroundBaseModel):
    """Top-level configuration struct for Turnaround.

    Attributes:
        tracking: Working-directory tracking settings.
        store: Snapshot store settings.
        branches: Branch defaults.
        history: History traversal defaults.
        timeline: Timeline display settings.
        watch: Change notification settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    tracking: TrackingOptions = Field(default_factory=TrackingOptions)
    store: StoreOptions = Field(default_factory=StoreOptions)
    branches: BranchOptions = Field(default_factory=BranchOptions)
    history: HistoryOptions = Field(default_factory=HistoryOptions)
    timeline: TimelineOptions = Field(default_factory=TimelineOptions)
    watch: WatchOptions = Field(default_factory=WatchOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DEFAULT_MEDIA_EXTENSIONS",
    "DEFAULT_PROJECT_EXTENSIONS",
    "LOG_LEVELS",
    "TurnaroundBaseModel",
    "TrackingOptions",
    "StoreOptions",
    "BranchOptions",
    "HistoryOptions",
    "TimelineOptions",
    "WatchOptions",
    "LoggingSettings",
    "CLIOptions",
    "TurnaroundConfig",
]
