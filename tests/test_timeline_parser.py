"""Timeline document parsing tests."""

from __future__ import annotations

import json

import pytest

from conftest import otio_document
from turnaround.state import FileSnapshot
from turnaround.timeline import (
    RationalTime,
    TimelineParseError,
    TrackKind,
    find_timeline_snapshot,
    parse_timeline,
    timeline_candidates,
)
from turnaround.timeline.parser import parse_fcpxml_time

FCPXML = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE fcpxml>
<fcpxml version="1.10">
  <resources>
    <format id="r1" frameDuration="1001/30000s"/>
    <asset id="r2" name="Interview" src="file:///media/interview.mov"/>
    <asset id="r3" name="Broll">
      <media-rep kind="original-media" src="file:///media/broll.mov"/>
    </asset>
    <asset id="r4" name="Music" src="file:///media/music.wav"/>
  </resources>
  <library>
    <event name="Day 1">
      <project name="Interview Cut">
        <sequence format="r1" duration="300300/30000s">
          <spine>
            <asset-clip ref="r2" name="Interview A" offset="0s" start="3600s" duration="150150/30000s">
              <asset-clip ref="r3" lane="1" name="Broll" offset="3600s" duration="5s"/>
              <audio ref="r4" lane="-1" name="Music" offset="3600s" duration="10s"/>
            </asset-clip>
            <gap name="Gap" offset="150150/30000s" duration="1001/30000s"/>
            <asset-clip ref="r2" name="Interview B" offset="151151/30000s" duration="0.5s"/>
          </spine>
        </sequence>
      </project>
    </event>
  </library>
</fcpxml>
"""


def test_parse_otio_timeline() -> None:
    document = otio_document(
        [
            {"name": "Intro", "url": "media/a.mov", "start": 0, "duration": 48},
            {"name": "Outro", "url": "media/b.mov", "start": 24, "duration": 24},
        ],
        name="Rough Cut",
        audio=True,
    )

    timeline = parse_timeline("cut.otio", document.encode("utf-8"))

    assert timeline.name == "Rough Cut"
    assert [(t.name, t.kind) for t in timeline.tracks] == [
        ("V1", TrackKind.VIDEO),
        ("A1", TrackKind.AUDIO),
    ]
    intro, outro = timeline.tracks[0].clips
    assert intro.media_ref == "media/a.mov"
    assert intro.source_range.duration == RationalTime(value=48, rate=24)
    assert outro.source_range.start.to_seconds() == 1.0
    # The empty audio track has no measurable duration.
    assert timeline.duration is None


def test_parse_otio_collection_and_defaults() -> None:
    document = {
        "OTIO_SCHEMA": "SerializableCollection.1",
        "children": [
            {
                "OTIO_SCHEMA": "Timeline.1",
                "tracks": {
                    "OTIO_SCHEMA": "Stack.1",
                    "children": [
                        {
                            "OTIO_SCHEMA": "Track.1",
                            "kind": "Video",
                            "children": [
                                {
                                    "OTIO_SCHEMA": "Clip.2",
                                    "active_media_reference_key": "PROXY",
                                    "media_references": {
                                        "DEFAULT_MEDIA": {"target_url": "full.mov"},
                                        "PROXY": {"target_url": "proxy.mov"},
                                    },
                                    "source_range": {
                                        "start_time": {"value": 0, "rate": 25},
                                        "duration": {"value": 50, "rate": 25},
                                    },
                                },
                                {
                                    "OTIO_SCHEMA": "Gap.1",
                                    "source_range": {
                                        "start_time": {"value": 0, "rate": 25},
                                        "duration": {"value": 25, "rate": 25},
                                    },
                                },
                            ],
                        }
                    ],
                },
            }
        ],
    }

    timeline = parse_timeline("edit.otio", json.dumps(document).encode("utf-8"))

    assert timeline.name == "Untitled"
    assert timeline.tracks[0].name == "Track 1"
    clip = timeline.tracks[0].clips[0]
    assert clip.name == "Untitled Clip"
    assert clip.media_ref == "proxy.mov"
    assert timeline.duration == RationalTime(value=75, rate=25)


def test_parse_fcpxml_storyline_and_lanes() -> None:
    timeline = parse_timeline("cut.fcpxml", FCPXML.encode("utf-8"))

    assert timeline.name == "Interview Cut"
    assert timeline.duration == RationalTime(value=300300, rate=30000)
    assert [(t.name, t.kind) for t in timeline.tracks] == [
        ("Primary Storyline", TrackKind.VIDEO),
        ("Lane 1", TrackKind.VIDEO),
        ("Audio Lane 1", TrackKind.AUDIO),
    ]
    first, second = timeline.tracks[0].clips
    assert first.name == "Interview A"
    assert first.media_ref == "file:///media/interview.mov"
    assert first.source_range.start == RationalTime(value=3600, rate=1)
    assert second.source_range.duration == RationalTime(value=1, rate=2)
    assert second.source_range.start == RationalTime(value=0, rate=2)
    assert timeline.tracks[1].clips[0].media_ref == "file:///media/broll.mov"
    assert timeline.tracks[2].clips[0].name == "Music"


def test_xml_extension_requires_fcpxml_root() -> None:
    with pytest.raises(TimelineParseError):
        parse_timeline("premiere.xml", b"<xmeml version='4'><sequence/></xmeml>")

    timeline = parse_timeline("export.xml", FCPXML.encode("utf-8"))
    assert timeline.clip_count == 4


@pytest.mark.parametrize(
    ("name", "data"),
    [
        ("cut.otio", b"{not json"),
        ("cut.otio", b'{"OTIO_SCHEMA": "Clip.2"}'),
        ("cut.fcpxml", b"<fcpxml><unclosed></fcpxml>"),
        ("cut.fcpxml", b"<fcpxml version='1.10'/>"),
        ("cut.edl", b"TITLE: cut"),
        ("cut.otio", b"\xff\xfe\x00garbage"),
        ("cut.otio", b'{"OTIO_SCHEMA": "Timeline.1", "name": "X", "tracks": [1]}'),
        ("cut.otio", b'{"OTIO_SCHEMA": "Timeline.1", "tracks": {"children": [1]}}'),
        ("cut.otio", b'{"OTIO_SCHEMA": "Timeline.1", "tracks": {"children": {}}}'),
        ("cut.otio", b'{"OTIO_SCHEMA": "SerializableCollection.1", "children": ["x"]}'),
        ("cut.otio", b"[1, 2]"),
    ],
)
def test_invalid_documents_raise(name: str, data: bytes) -> None:
    with pytest.raises(TimelineParseError):
        parse_timeline(name, data)


def test_parse_fcpxml_time_forms() -> None:
    assert parse_fcpxml_time("1001/30000s") == RationalTime(value=1001, rate=30000)
    assert parse_fcpxml_time("5s") == RationalTime(value=5, rate=1)
    assert parse_fcpxml_time("0.5s") == RationalTime(value=1, rate=2)
    assert parse_fcpxml_time(None) is None
    assert parse_fcpxml_time("soon") is None


def _snapshots(*paths: str) -> list[FileSnapshot]:
    return [
        FileSnapshot(commit_id="c", file_path=path, content_hash="a" * 64, file_size=1)
        for path in paths
    ]


def test_find_timeline_snapshot_uses_path_order() -> None:
    snapshots = _snapshots("media/a.mov", "z-final.otio", "exports/cut.fcpxml")

    found = find_timeline_snapshot(snapshots)

    assert found is not None
    assert found.file_path == "exports/cut.fcpxml"
    assert find_timeline_snapshot(snapshots[:1]) is None


def test_timeline_candidates_rank_generic_xml_last() -> None:
    snapshots = _snapshots("Audio.xml", "media/a.mov", "cut.otio", "b/export.xml", "cut.fcpxml")

    ranked = [snapshot.file_path for snapshot in timeline_candidates(snapshots)]

    assert ranked == ["cut.fcpxml", "cut.otio", "Audio.xml", "b/export.xml"]
    assert find_timeline_snapshot(snapshots).file_path == "cut.fcpxml"


def test_parse_otio_prefers_document_duration() -> None:
    document = json.loads(
        otio_document([{"name": "Intro", "url": "media/a.mov", "start": 0, "duration": 48}])
    )
    derived = parse_timeline("cut.otio", json.dumps(document).encode("utf-8"))
    document["duration"] = {"OTIO_SCHEMA": "RationalTime.1", "value": 120, "rate": 24}

    declared = parse_timeline("cut.otio", json.dumps(document).encode("utf-8"))

    assert derived.duration == RationalTime(value=48, rate=24)
    assert declared.duration == RationalTime(value=120, rate=24)
