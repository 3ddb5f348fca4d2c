"""End-to-end tests for the multitrack pipeline."""

import json

import numpy as np
import pytest

from track_analyzer import (
    AnalyzedTracks,
    CancellationToken,
    InputError,
    InstrumentCategory,
    MultiTrackTranscriber,
    PCMBuffer,
    Preprocessor,
    TranscriptionCancelled,
    TranscriptionConfig,
    analyze_audio_to_tracks,
)

from conftest import place, snare, tone


@pytest.fixture
def transcriber():
    return MultiTrackTranscriber()


class TestAnalyzeAudioToTracks:
    """Behavioral properties of the full pipeline."""

    @pytest.mark.parametrize("n_samples", [1, 100, 2048, 22050, 66150])
    def test_silence_is_empty(self, n_samples):
        tracks = analyze_audio_to_tracks(np.zeros(n_samples), 22050)
        assert tracks.is_empty

    def test_empty_input(self):
        tracks = analyze_audio_to_tracks(np.zeros(0), 44100)
        assert tracks == AnalyzedTracks.empty()

    def test_sine_in_exactly_one_melodic_stem(self, sine_440):
        tracks = analyze_audio_to_tracks(sine_440, 22050)
        with_notes = [c for c, t in tracks.melodic_tracks.items() if len(t)]
        assert len(with_notes) == 1
        notes = tracks.track(with_notes[0]).notes
        assert any(abs(n.pitch - 69) <= 1 and n.duration >= 0.06 for n in notes)

    def test_sine_goes_to_keys(self, sine_440):
        tracks = analyze_audio_to_tracks(sine_440, 22050)
        assert len(tracks.keys) >= 1

    def test_bass_line(self, bass_82):
        tracks = analyze_audio_to_tracks(bass_82, 22050)
        assert any(n.pitch == 40 for n in tracks.bass.notes)

    def test_stereo_input(self, sine_440):
        interleaved = np.stack([sine_440, sine_440], axis=1).reshape(-1)
        tracks = analyze_audio_to_tracks(interleaved, 22050, channels=2)
        assert tracks.total_notes >= 1

    def test_resampled_input(self):
        tracks = analyze_audio_to_tracks(tone(440.0, 1.0, sr=44100), 44100)
        notes = [n for t in tracks.melodic_tracks.values() for n in t.notes]
        assert any(abs(n.pitch - 69) <= 1 for n in notes)

    def test_short_input(self):
        audio = tone(440.0, 0.05, fade=0.0)
        frames = Preprocessor().process(PCMBuffer.create(audio, 22050))
        assert frames.n_frames == 1

        tracks = analyze_audio_to_tracks(audio, 22050)
        assert isinstance(tracks, AnalyzedTracks)
        # One frame lasts less than the shortest allowed note
        assert tracks.total_notes == 0
        assert len(tracks.drums) <= 1
        assert all(0.0 <= h.time <= 0.05 for h in tracks.drums.hits)

    @pytest.mark.parametrize("freq", [110.0, 440.0, 1000.0, 1900.0])
    @pytest.mark.parametrize("fade", [0.0, 0.01, 0.1])
    def test_steady_tone_has_no_drums(self, freq, fade):
        tracks = analyze_audio_to_tracks(tone(freq, 2.0, fade=fade), 22050)
        assert len(tracks.drums) == 0

    def test_events_within_input(self, rng):
        audio = place(
            [(0.0, tone(330.0, 1.5, fade=0.0)), (0.4, snare(rng)), (1.4, snare(rng))],
            duration=1.5,
        )
        tracks = analyze_audio_to_tracks(audio, 22050)
        assert len(tracks.drums) >= 1
        assert all(0.0 <= h.time <= 1.5 for h in tracks.drums.hits)
        for track in tracks.melodic_tracks.values():
            assert all(n.start_time <= 1.5 for n in track.notes)

    def test_percussion_gives_hits(self, rng):
        audio = place([(0.2, snare(rng)), (0.7, snare(rng)), (1.2, snare(rng))], duration=1.6)
        tracks = analyze_audio_to_tracks(audio, 22050)
        assert len(tracks.drums) >= 2

    def test_deterministic(self, rng):
        audio = place([(0.0, tone(330.0, 1.5)), (0.5, snare(rng))], duration=1.5)
        first = analyze_audio_to_tracks(audio, 22050)
        second = analyze_audio_to_tracks(audio, 22050)
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    def test_single_worker_matches_default(self, rng):
        audio = place([(0.0, tone(330.0, 1.0)), (0.5, snare(rng))], duration=1.0)
        buffer = PCMBuffer.create(audio, 22050)
        default = MultiTrackTranscriber().transcribe(buffer)
        single = MultiTrackTranscriber(max_workers=1).transcribe(buffer)
        assert default.to_dict() == single.to_dict()

    def test_events_sorted_in_every_track(self, rng):
        audio = place(
            [(0.0, tone(220.0, 1.0)), (1.0, tone(330.0, 1.0)), (0.5, snare(rng)), (1.5, snare(rng))],
            duration=2.0,
        )
        tracks = analyze_audio_to_tracks(audio, 22050)
        for track in tracks.melodic_tracks.values():
            starts = [n.start_time for n in track.notes]
            assert starts == sorted(starts)
        times = [h.time for h in tracks.drums.hits]
        assert times == sorted(times)

    def test_invalid_input_raises(self):
        with pytest.raises(InputError):
            analyze_audio_to_tracks(np.array([0.0, np.nan]), 22050)
        with pytest.raises(InputError):
            analyze_audio_to_tracks(np.zeros(100), 0)

    def test_custom_config(self, sine_440):
        config = TranscriptionConfig.from_dict({"separation": {"keys_max_hz": 300.0}})
        tracks = analyze_audio_to_tracks(sine_440, 22050, config=config)
        assert len(tracks.keys) == 0
        assert len(tracks.other) >= 1


class TestMultiTrackTranscriber:
    """Tests for staging and cancellation."""

    def test_stage_events(self, transcriber, sine_440):
        events = list(transcriber.iter_stages(PCMBuffer.create(sine_440, 22050)))
        assert len(events) == MultiTrackTranscriber.TOTAL_STAGES
        assert events[0].stage == "preprocess"
        assert events[1].stage == "separate"
        assert events[-1].stage == "aggregate"
        assert [e.completed for e in events] == list(range(1, 10))
        assert events[-1].fraction == 1.0
        assert all(e.result is None for e in events[:-1])
        assert isinstance(events[-1].result, AnalyzedTracks)

    def test_every_stem_reported(self, transcriber, sine_440):
        events = list(transcriber.iter_stages(PCMBuffer.create(sine_440, 22050)))
        stems = {e.stage.split(":")[1] for e in events if e.stage.startswith("analyze:")}
        assert stems == {c.value for c in InstrumentCategory.all_categories()}

    def test_empty_buffer_single_event(self, transcriber):
        events = list(transcriber.iter_stages(PCMBuffer.create(np.zeros(0), 22050)))
        assert len(events) == 1
        assert events[0].result.is_empty

    def test_cancel_before_start(self, transcriber, sine_440):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(TranscriptionCancelled):
            transcriber.transcribe(PCMBuffer.create(sine_440, 22050), cancel_token=token)

    def test_cancel_between_stages(self, transcriber, sine_440):
        token = CancellationToken()
        stages = transcriber.iter_stages(PCMBuffer.create(sine_440, 22050), token)
        assert next(stages).stage == "preprocess"
        token.cancel()
        with pytest.raises(TranscriptionCancelled):
            next(stages)

    def test_cancel_during_stem_analysis(self, transcriber, sine_440):
        token = CancellationToken()
        stages = transcriber.iter_stages(PCMBuffer.create(sine_440, 22050), token)
        for event in stages:
            if event.stage.startswith("analyze:"):
                token.cancel()
                break
        with pytest.raises(TranscriptionCancelled):
            next(stages)

    def test_token_state(self):
        token = CancellationToken()
        assert not token.cancelled
        token.check("anything")
        token.cancel()
        assert token.cancelled
        with pytest.raises(TranscriptionCancelled, match="separate"):
            token.check("separate")

    def test_invalid_config_rejected(self):
        from track_analyzer import ConfigError

        with pytest.raises(ConfigError):
            MultiTrackTranscriber(TranscriptionConfig(max_workers=0))
