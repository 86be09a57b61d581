"""Editing timeline data models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RationalTime(BaseModel):
    """A time expressed as ``value`` ticks at ``rate`` ticks per second.

    A rate of zero or less means the rate is unknown; such values are never
    divided. Equality is exact on value and rate.
    """

    model_config = ConfigDict(frozen=True)

    value: float
    rate: float

    @property
    def has_rate(self) -> bool:
        return self.rate > 0

    def to_seconds(self, fallback_rate: float | None = None) -> float | None:
        """Return seconds, substituting ``fallback_rate`` when the rate is unknown.

        Returns None when neither the own rate nor the fallback is usable.
        """
        if self.rate > 0:
            return self.value / self.rate
        if fallback_rate is not None and fallback_rate > 0:
            return self.value / fallback_rate
        return None


class TimeRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: RationalTime
    duration: RationalTime

    def end_seconds(self, fallback_rate: float | None = None) -> float | None:
        start = self.start.to_seconds(fallback_rate)
        duration = self.duration.to_seconds(fallback_rate)
        if start is None or duration is None:
            return None
        return start + duration


class TrackKind(str, Enum):
    VIDEO = "Video"
    AUDIO = "Audio"


class Clip(BaseModel):
    """A media segment placed on a track.

    Attributes:
        name: Clip name as shown in the editor.
        media_ref: Location of the referenced media, when known.
        source_range: Portion of the media used by the clip.
        trimmed_range: Range after trimming, when the document records one.
    """

    name: str
    media_ref: Optional[str] = None
    source_range: Optional[TimeRange] = None
    trimmed_range: Optional[TimeRange] = None


class Track(BaseModel):
    name: str
    kind: TrackKind = TrackKind.VIDEO
    clips: List[Clip] = Field(default_factory=list)


class Timeline(BaseModel):
    name: str
    tracks: List[Track] = Field(default_factory=list)
    duration: Optional[RationalTime] = None

    def tracks_of(self, kind: TrackKind) -> List[Track]:
        return [track for track in self.tracks if track.kind == kind]

    @property
    def clip_count(self) -> int:
        return sum(len(track.clips) for track in self.tracks)


__all__ = ["RationalTime", "TimeRange", "TrackKind", "Clip", "Track", "Timeline"]
