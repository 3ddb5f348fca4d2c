"""Tests for the command-line interface."""

import json

import numpy as np
import pytest
import soundfile as sf
from typer.testing import CliRunner

from track_analyzer.cli import app

from conftest import tone

runner = CliRunner()


@pytest.fixture
def wav_file(tmp_path):
    path = tmp_path / "sine.wav"
    sf.write(str(path), tone(440.0, 1.0), 22050)
    return path


@pytest.fixture
def stereo_file(tmp_path):
    path = tmp_path / "stereo.wav"
    x = tone(220.0, 0.5, sr=44100)
    sf.write(str(path), np.stack([x, x], axis=1), 44100)
    return path


class TestTranscribeCommand:
    def test_writes_json(self, wav_file, tmp_path):
        output = tmp_path / "tracks.json"
        result = runner.invoke(app, ["transcribe", str(wav_file), "--output", str(output)])
        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert set(data) == {"vocals", "bass", "keys", "guitar", "other", "drums"}
        assert len(data["keys"]["notes"]) >= 1

    def test_summary_table(self, wav_file):
        result = runner.invoke(app, ["transcribe", str(wav_file)])
        assert result.exit_code == 0, result.output
        assert "Transcribed Tracks" in result.output
        assert "Keys" in result.output

    def test_stereo_and_workers(self, stereo_file):
        result = runner.invoke(app, ["transcribe", str(stereo_file), "--workers", "1", "--verbose"])
        assert result.exit_code == 0, result.output

    def test_config_file(self, wav_file, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"separation": {"keys_max_hz": 300.0}}))
        output = tmp_path / "tracks.json"
        result = runner.invoke(
            app, ["transcribe", str(wav_file), "--config", str(config), "-o", str(output)]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text())["keys"]["notes"] == []

    def test_bad_config(self, wav_file, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"nonsense": 1}))
        result = runner.invoke(app, ["transcribe", str(wav_file), "--config", str(config)])
        assert result.exit_code == 1
        assert "Unknown config keys" in result.output

    def test_wrongly_typed_config(self, wav_file, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"max_workers": "4"}))
        result = runner.invoke(app, ["transcribe", str(wav_file), "--config", str(config)])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert "Traceback" not in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["transcribe", str(tmp_path / "missing.wav")])
        assert result.exit_code == 1
        assert "File not found" in result.output


class TestInfoCommand:
    def test_info(self, stereo_file):
        result = runner.invoke(app, ["info", str(stereo_file)])
        assert result.exit_code == 0, result.output
        assert "44100 Hz" in result.output
        assert "Channels: 2" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["info", str(tmp_path / "missing.wav")])
        assert result.exit_code == 1
