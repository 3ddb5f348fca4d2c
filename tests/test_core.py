"""Tests for core event types and the AnalyzedTracks record."""

import json

import pytest

from track_analyzer.core import (
    AnalyzedTracks,
    DrumTrack,
    Hit,
    HitType,
    InstrumentCategory,
    InstrumentTrack,
    Note,
)


class TestNote:
    """Tests for Note dataclass."""

    def test_note_creation(self):
        note = Note(pitch=60, start_time=0.5, duration=1.0, velocity=0.8)
        assert note.pitch == 60
        assert note.start_time == 0.5
        assert note.end_time == 1.5
        assert note.confidence == 1.0

    def test_non_positive_duration_rejected(self):
        with pytest.raises(ValueError):
            Note(pitch=60, start_time=0.0, duration=0.0)

    def test_pitch_name(self):
        assert Note(pitch=60, start_time=0, duration=1).pitch_name == "C4"
        assert Note(pitch=69, start_time=0, duration=1).pitch_name == "A4"
        assert Note(pitch=61, start_time=0, duration=1).pitch_name == "C#4"

    def test_freq_to_midi(self):
        assert Note.freq_to_midi(440.0) == 69
        assert Note.freq_to_midi(261.63) == 60
        assert Note.freq_to_midi(0.0) == 0

    def test_midi_to_freq(self):
        assert Note.midi_to_freq(69) == 440.0
        assert abs(Note.midi_to_freq(60) - 261.63) < 1.0

    def test_overlaps(self):
        a = Note(pitch=60, start_time=0.0, duration=1.0)
        b = Note(pitch=64, start_time=0.5, duration=1.0)
        c = Note(pitch=67, start_time=1.0, duration=1.0)
        assert a.overlaps(b)
        assert not a.overlaps(c)

    def test_to_dict_field_names(self):
        note = Note(pitch=60, start_time=0.25, duration=0.5, velocity=0.7, confidence=0.9)
        assert note.to_dict() == {
            "pitch": 60,
            "startTime": 0.25,
            "duration": 0.5,
            "velocity": 0.7,
            "confidence": 0.9,
        }


class TestHit:
    def test_to_dict_uses_type_name(self):
        hit = Hit(type=HitType.SNARE, time=1.0, velocity=0.5, confidence=0.8)
        assert hit.to_dict()["type"] == "snare"


class TestInstrumentCategory:
    def test_all_categories(self):
        categories = InstrumentCategory.all_categories()
        assert len(categories) == 6
        assert categories[-1] is InstrumentCategory.DRUMS

    def test_melodic_categories(self):
        melodic = InstrumentCategory.melodic_categories()
        assert InstrumentCategory.DRUMS not in melodic
        assert all(c.is_melodic for c in melodic)
        assert not InstrumentCategory.DRUMS.is_melodic


class TestAnalyzedTracks:
    def test_empty(self):
        tracks = AnalyzedTracks.empty()
        assert tracks.is_empty
        assert tracks.total_notes == 0
        assert set(tracks.summary().values()) == {0}

    def test_track_lookup(self):
        note = Note(pitch=40, start_time=0.0, duration=0.5)
        tracks = AnalyzedTracks(bass=InstrumentTrack(notes=(note,)))
        assert tracks.track(InstrumentCategory.BASS).notes == (note,)
        assert len(tracks.track(InstrumentCategory.KEYS)) == 0
        assert tracks.summary()["bass"] == 1

    def test_to_dict_is_json_ready(self):
        tracks = AnalyzedTracks(
            keys=InstrumentTrack(notes=(Note(pitch=69, start_time=0.0, duration=0.5),)),
            drums=DrumTrack(hits=(Hit(type=HitType.KICK, time=0.1),)),
        )
        data = json.loads(json.dumps(tracks.to_dict()))
        assert set(data) == {"vocals", "bass", "keys", "guitar", "other", "drums"}
        assert data["keys"]["notes"][0]["pitch"] == 69
        assert data["drums"]["hits"][0]["type"] == "kick"

    def test_immutable(self):
        tracks = AnalyzedTracks.empty()
        with pytest.raises(AttributeError):
            tracks.vocals = InstrumentTrack()
