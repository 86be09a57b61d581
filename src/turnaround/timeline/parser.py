"""Parse editing timeline documents into :class:`Timeline` models.

Two formats are understood:

* OpenTimelineIO JSON (``.otio``), either a ``Timeline`` or a
  ``SerializableCollection`` whose first child is a timeline.
* Final Cut Pro XML (``.fcpxml``, or ``.xml`` whose root element is
  ``fcpxml``). Only the first sequence's spine is read: clips on the primary
  storyline form one video track, connected clips are grouped into one track
  per lane (negative lanes and audio elements are audio).
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from fractions import Fraction
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from turnaround.state.models import FileSnapshot

from .models import Clip, RationalTime, TimeRange, Timeline, Track, TrackKind

LOGGER = logging.getLogger(__name__)

TIMELINE_EXTENSIONS = ("otio", "fcpxml", "xml")

_FCPXML_CLIP_TAGS = {"asset-clip", "clip", "video", "audio", "ref-clip", "sync-clip", "mc-clip"}


class TimelineParseError(ValueError):
    """Raised when a document cannot be read as a timeline."""


def is_timeline_path(path: str) -> bool:
    return PurePosixPath(path).suffix.lower().lstrip(".") in TIMELINE_EXTENSIONS


def parse_timeline(name: str, data: bytes) -> Timeline:
    """Parse ``data`` according to the extension of ``name``.

    Raises:
        TimelineParseError: If the format is unsupported or the content is invalid.
    """
    ext = PurePosixPath(name).suffix.lower().lstrip(".")
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise TimelineParseError(f"{name} is not UTF-8 text: {exc}") from exc

    if ext == "otio":
        return parse_otio_json(text)
    if ext in ("fcpxml", "xml"):
        return parse_fcpxml(text)
    raise TimelineParseError(f"Unsupported timeline format: .{ext}")


# OpenTimelineIO -------------------------------------------------------------


def parse_otio_json(text: str) -> Timeline:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TimelineParseError(f"Invalid JSON: {exc}") from exc
    value = _require_dict(value, "OTIO document")

    schema = str(value.get("OTIO_SCHEMA", ""))
    if schema.startswith("Timeline"):
        return _parse_otio_timeline(value)
    if schema.startswith("SerializableCollection"):
        children = _optional_list(value.get("children"), "collection children")
        if not children:
            raise TimelineParseError("Empty collection.")
        return _parse_otio_timeline(_require_dict(children[0], "collection child"))
    raise TimelineParseError(f"Unsupported OTIO schema: {schema or '<none>'}")


def _require_dict(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise TimelineParseError(f"{what} must be a JSON object, not {type(value).__name__}.")
    return value


def _optional_list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TimelineParseError(f"{what} must be a JSON array, not {type(value).__name__}.")
    return value


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value:
        return value
    return default


def _parse_otio_timeline(value: Dict[str, Any]) -> Timeline:
    tracks: List[Track] = []
    track_durations: List[Optional[RationalTime]] = []
    stack = _require_dict(value.get("tracks") or {}, "timeline tracks")
    for index, track_value in enumerate(_optional_list(stack.get("children"), "stack children")):
        track_value = _require_dict(track_value, "track")
        kind = TrackKind.AUDIO if track_value.get("kind") == "Audio" else TrackKind.VIDEO
        clips: List[Clip] = []
        item_durations: List[Optional[RationalTime]] = []
        for child in _optional_list(track_value.get("children"), "track children"):
            child = _require_dict(child, "track item")
            schema = str(child.get("OTIO_SCHEMA", ""))
            if schema.startswith("Clip"):
                clip = _parse_otio_clip(child)
                clips.append(clip)
                item_durations.append(clip.source_range.duration if clip.source_range else None)
            elif schema.startswith("Gap"):
                gap_range = _parse_otio_range(child.get("source_range"))
                item_durations.append(gap_range.duration if gap_range else None)
        track_name = _text(track_value.get("name"), f"Track {index + 1}")
        tracks.append(Track(name=track_name, kind=kind, clips=clips))
        track_durations.append(_sum_durations(item_durations))

    duration = _parse_otio_time(value.get("duration"))
    known = [item for item in track_durations if item is not None]
    if duration is None and known and len(known) == len(track_durations):
        duration = max(known, key=lambda item: item.to_seconds() or 0.0)

    return Timeline(name=_text(value.get("name"), "Untitled"), tracks=tracks, duration=duration)


def _parse_otio_clip(value: Dict[str, Any]) -> Clip:
    return Clip(
        name=_text(value.get("name"), "Untitled Clip"),
        media_ref=_otio_media_ref(value),
        source_range=_parse_otio_range(value.get("source_range")),
        trimmed_range=_parse_otio_range(value.get("trimmed_range")),
    )


def _otio_media_ref(value: Dict[str, Any]) -> Optional[str]:
    reference = value.get("media_reference")
    references = value.get("media_references")
    if isinstance(references, dict):
        key = _text(value.get("active_media_reference_key"), "DEFAULT_MEDIA")
        reference = references.get(key, reference)
    if isinstance(reference, dict):
        target = reference.get("target_url")
        if isinstance(target, str) and target:
            return target
    return None


def _parse_otio_range(value: Any) -> Optional[TimeRange]:
    if not isinstance(value, dict):
        return None
    start = _parse_otio_time(value.get("start_time"))
    duration = _parse_otio_time(value.get("duration"))
    if start is None or duration is None:
        return None
    return TimeRange(start=start, duration=duration)


def _parse_otio_time(value: Any) -> Optional[RationalTime]:
    if not isinstance(value, dict):
        return None
    try:
        return RationalTime(value=float(value["value"]), rate=float(value["rate"]))
    except (KeyError, TypeError, ValueError):
        return None


def _sum_durations(durations: Iterable[Optional[RationalTime]]) -> Optional[RationalTime]:
    """Sum durations that share one known rate; otherwise return None."""
    items = list(durations)
    if not items or any(item is None or not item.has_rate for item in items):
        return None
    rates = {item.rate for item in items if item is not None}
    if len(rates) != 1:
        return None
    total = sum(item.value for item in items if item is not None)
    return RationalTime(value=total, rate=rates.pop())


# Final Cut Pro XML ------------------------------------------------------------


def parse_fcpxml(text: str) -> Timeline:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise TimelineParseError(f"Invalid XML: {exc}") from exc
    if root.tag != "fcpxml":
        raise TimelineParseError(f"Unsupported XML document root: <{root.tag}>")

    assets = _fcpxml_assets(root)
    project = root.find(".//project")
    sequence = project.find("sequence") if project is not None else root.find(".//sequence")
    if sequence is None:
        raise TimelineParseError("FCPXML document contains no sequence.")

    name = (project.get("name") if project is not None else None) or "FCPXML Timeline"
    primary = Track(name="Primary Storyline", kind=TrackKind.VIDEO)
    lanes: Dict[Tuple[bool, int], Track] = {}

    spine = sequence.find("spine")
    for element in list(spine) if spine is not None else []:
        if element.tag in _FCPXML_CLIP_TAGS:
            primary.clips.append(_parse_fcpxml_clip(element, assets))
        for child in element:
            lane = child.get("lane")
            if child.tag not in _FCPXML_CLIP_TAGS or lane is None:
                continue
            try:
                lane_number = int(lane)
            except ValueError:
                LOGGER.debug("Ignoring clip with non-numeric lane %r", lane)
                continue
            is_audio = lane_number < 0 or child.tag == "audio"
            key = (is_audio, abs(lane_number))
            track = lanes.get(key)
            if track is None:
                label = "Audio Lane" if is_audio else "Lane"
                kind = TrackKind.AUDIO if is_audio else TrackKind.VIDEO
                track = Track(name=f"{label} {abs(lane_number)}", kind=kind)
                lanes[key] = track
            track.clips.append(_parse_fcpxml_clip(child, assets))

    tracks = [primary]
    tracks.extend(lanes[key] for key in sorted(lanes))
    return Timeline(
        name=name,
        tracks=tracks,
        duration=parse_fcpxml_time(sequence.get("duration")),
    )


def _fcpxml_assets(root: ET.Element) -> Dict[str, str]:
    assets: Dict[str, str] = {}
    for asset in root.iter("asset"):
        asset_id = asset.get("id")
        if not asset_id:
            continue
        src = asset.get("src")
        if src is None:
            media_rep = asset.find("media-rep")
            src = media_rep.get("src") if media_rep is not None else None
        if src:
            assets[asset_id] = src
    return assets


def _parse_fcpxml_clip(element: ET.Element, assets: Dict[str, str]) -> Clip:
    ref = element.get("ref")
    duration = parse_fcpxml_time(element.get("duration"))
    source_range = None
    if duration is not None:
        start = parse_fcpxml_time(element.get("start")) or RationalTime(value=0, rate=duration.rate)
        source_range = TimeRange(start=start, duration=duration)
    return Clip(
        name=element.get("name") or "Untitled Clip",
        media_ref=assets.get(ref) if ref else None,
        source_range=source_range,
    )


def parse_fcpxml_time(value: Optional[str]) -> Optional[RationalTime]:
    """Parse FCPXML rational time strings such as ``1001/30000s`` or ``5s``."""
    if not value:
        return None
    raw = value.strip()
    if raw.endswith("s"):
        raw = raw[:-1]
    try:
        if "/" in raw:
            numerator, denominator = raw.split("/", 1)
            return RationalTime(value=float(int(numerator)), rate=float(int(denominator)))
        seconds = Fraction(raw)
    except (ValueError, ZeroDivisionError):
        LOGGER.debug("Unparseable FCPXML time %r", value)
        return None
    return RationalTime(value=float(seconds.numerator), rate=float(seconds.denominator))


def timeline_candidates(snapshots: Sequence[FileSnapshot]) -> List[FileSnapshot]:
    """Return timeline snapshots, ``.otio`` and ``.fcpxml`` before generic ``.xml``.

    Within each group snapshots are in path order.
    """
    found = [snapshot for snapshot in snapshots if is_timeline_path(snapshot.file_path)]
    return sorted(
        found,
        key=lambda item: (
            PurePosixPath(item.file_path).suffix.lower() == ".xml",
            item.file_path,
        ),
    )


def find_timeline_snapshot(snapshots: Sequence[FileSnapshot]) -> Optional[FileSnapshot]:
    """Return the preferred timeline snapshot, or None."""
    candidates = timeline_candidates(snapshots)
    return candidates[0] if candidates else None


__all__ = [
    "TIMELINE_EXTENSIONS",
    "TimelineParseError",
    "find_timeline_snapshot",
    "is_timeline_path",
    "parse_timeline",
    "parse_otio_json",
    "parse_fcpxml",
    "parse_fcpxml_time",
    "timeline_candidates",
]
