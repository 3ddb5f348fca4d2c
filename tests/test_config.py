"""Tests for configuration loading and validation."""

import json

import pytest

from track_analyzer.core import (
    ConfigError,
    NoteConfig,
    TranscriptionConfig,
    load_config,
)


class TestTranscriptionConfig:
    def test_defaults_are_valid(self):
        config = TranscriptionConfig()
        assert config.validate() is config
        assert config.preprocess.sample_rate == 22050
        assert config.preprocess.frame_length == 2048
        assert config.preprocess.hop_length == 512
        assert config.notes.max_polyphony == 4

    def test_from_dict_nested(self):
        config = TranscriptionConfig.from_dict({
            "notes": {"max_polyphony": 2},
            "max_workers": 3,
        })
        assert config.notes.max_polyphony == 2
        assert config.notes.min_note_duration == NoteConfig().min_note_duration
        assert config.max_workers == 3

    def test_from_dict_round_trip(self):
        config = TranscriptionConfig.from_dict({"drums": {"onset": {"threshold_k": 2.0}}})
        assert TranscriptionConfig.from_dict(config.to_dict()) == config

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError, match="notes.bogus"):
            TranscriptionConfig.from_dict({"notes": {"bogus": 1}})

    def test_non_mapping_section_rejected(self):
        with pytest.raises(ConfigError):
            TranscriptionConfig.from_dict({"pitch": 5})

    @pytest.mark.parametrize("data", [
        {"max_workers": 0},
        {"notes": {"max_polyphony": 0}},
        {"pitch": {"fmin": 3000.0}},
        {"preprocess": {"hop_length": 4096}},
        {"max_workers": "4"},
        {"max_workers": 2.5},
        {"notes": {"enable_polyphony": "yes"}},
        {"onset": {"window_frames": -5}},
        {"onset": {"relative_floor": 1.5}},
        {"drums": {"onset": {"min_gap_frames": 0}}},
        {"drums": {"feature_window": 0.0}},
        {"drums": {"low_band_hz": 6000.0}},
        {"drums": {"min_mixture_ratio": -0.1}},
        {"notes": {"poly_peak_ratio": 0.0}},
    ])
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ConfigError):
            TranscriptionConfig.from_dict(data)

    def test_wrong_type_set_directly(self):
        config = TranscriptionConfig(max_workers="4")
        with pytest.raises(ConfigError, match="type"):
            config.validate()

    def test_int_accepted_for_float_field(self):
        config = TranscriptionConfig.from_dict({"separation": {"bass_cutoff_hz": 200}})
        assert config.separation.bass_cutoff_hz == 200

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            TranscriptionConfig.from_dict({"max_workers": 0})


class TestLoadConfig:
    def test_load(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"separation": {"bass_cutoff_hz": 200.0}}))
        config = load_config(path)
        assert config.separation.bass_cutoff_hz == 200.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(path)
