"""Tests for TrackAggregator."""

from track_analyzer.core import AnalyzedTracks, Hit, HitType, InstrumentCategory, Note
from track_analyzer.transcription import TrackAggregator


def sample_events():
    notes = {
        InstrumentCategory.BASS: [
            Note(pitch=40, start_time=1.0, duration=0.5),
            Note(pitch=43, start_time=0.0, duration=0.5),
        ],
        InstrumentCategory.KEYS: [
            Note(pitch=67, start_time=0.5, duration=0.5),
            Note(pitch=60, start_time=0.5, duration=0.5),
        ],
    }
    hits = [
        Hit(type=HitType.SNARE, time=0.5),
        Hit(type=HitType.KICK, time=0.0),
        Hit(type=HitType.HIHAT, time=0.5),
    ]
    return notes, hits


class TestTrackAggregator:
    def test_missing_categories_are_empty(self):
        notes, hits = sample_events()
        tracks = TrackAggregator().aggregate(notes, hits)
        assert len(tracks.vocals) == 0
        assert len(tracks.guitar) == 0
        assert len(tracks.other) == 0
        assert len(tracks.bass) == 2

    def test_notes_sorted_by_time_then_pitch(self):
        notes, hits = sample_events()
        tracks = TrackAggregator().aggregate(notes, hits)
        assert [n.pitch for n in tracks.bass.notes] == [43, 40]
        assert [n.pitch for n in tracks.keys.notes] == [60, 67]

    def test_hits_sorted(self):
        notes, hits = sample_events()
        tracks = TrackAggregator().aggregate(notes, hits)
        assert [h.type for h in tracks.drums.hits] == [HitType.KICK, HitType.HIHAT, HitType.SNARE]

    def test_no_events(self):
        tracks = TrackAggregator().aggregate({})
        assert tracks == AnalyzedTracks.empty()

    def test_idempotent(self):
        notes, hits = sample_events()
        aggregator = TrackAggregator()
        tracks = aggregator.aggregate(notes, hits)
        assert aggregator.reaggregate(tracks) == tracks

    def test_nothing_merged_across_stems(self):
        same = Note(pitch=60, start_time=0.0, duration=0.5)
        tracks = TrackAggregator().aggregate({
            InstrumentCategory.KEYS: [same],
            InstrumentCategory.GUITAR: [same],
        })
        assert tracks.total_notes == 2
