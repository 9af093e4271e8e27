import asyncio
import json
import os

import pytest

import main
from scribe.config import ScribeConfig
from scribe.exceptions import ConfigurationError, TranscriptionCancelled
from scribe.cancellation import CancellationToken
from scribe.gemini_client import GeminiScribe

from conftest import FakeClient, audio_response, text_response

TRANSCRIPT = json.dumps({"segments": [
    {"startTime": "0.5", "endTime": "2.1", "text": "hello there"},
    {"startTime": "00:00:02.300", "endTime": "00:00:03.900", "text": "goodbye"},
]})

TRANSLATION = json.dumps({"segments": [
    {"startTime": "00:00:00.500", "endTime": "00:00:02.100", "text": "hello there", "translatedText": "hola"},
    {"startTime": "00:00:02.300", "endTime": "00:00:03.900", "text": "goodbye", "translatedText": "adios"},
]})


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "clip.wav"
    path.write_bytes(b"RIFF....WAVE")
    return str(path)


@pytest.fixture(autouse=True)
def no_ffprobe(monkeypatch):
    monkeypatch.setattr(main, "get_audio_duration_ms", lambda path: None)


class TestRunPipeline:

    def test_transcribe_only(self, audio_file, tmp_path):
        config = ScribeConfig(audio_path=audio_file, output_dir=str(tmp_path / "out"))
        fake = FakeClient(text_response(TRANSCRIPT))
        scribe = GeminiScribe(api_key="k", client=fake)

        outputs = asyncio.run(main.run_pipeline(config, scribe))

        assert set(outputs) == {"json", "srt"}
        with open(outputs["json"], encoding="utf-8") as f:
            data = json.load(f)
        assert data["segments"][0] == {
            "startTime": "00:00:00.500", "endTime": "00:00:02.100", "text": "hello there"
        }
        assert fake.models.calls[0]["contents"][0].parts[0].inline_data.mime_type == "audio/wav"

    def test_translate_and_speak(self, audio_file, tmp_path):
        config = ScribeConfig(
            audio_path=audio_file, output_dir=str(tmp_path / "out"),
            target_language="Spanish", speak=True,
        )
        fake = FakeClient(
            text_response(TRANSCRIPT),
            text_response(TRANSLATION),
            audio_response(b"\x00\x00" * 10),
            audio_response(b"\x00\x00" * 10),
        )
        scribe = GeminiScribe(api_key="k", client=fake)

        outputs = asyncio.run(main.run_pipeline(config, scribe))

        with open(outputs["translated_srt"], encoding="utf-8") as f:
            assert "hola" in f.read()
        assert sorted(os.listdir(outputs["speech_dir"])) == ["seg_000.wav", "seg_001.wav"]
        assert [c["model"] for c in fake.models.calls[2:]] == [scribe.tts_model] * 2

    def test_failed_speech_segment_does_not_stop_others(self, audio_file, tmp_path):
        from google.genai import errors

        config = ScribeConfig(
            audio_path=audio_file, output_dir=str(tmp_path / "out"),
            target_language="Spanish", speak=True,
        )
        fake = FakeClient(
            text_response(TRANSCRIPT),
            text_response(TRANSLATION),
            errors.ServerError(500, {"error": {"code": 500, "message": "backend error"}}),
            audio_response(b"\x00\x00"),
        )
        outputs = asyncio.run(main.run_pipeline(config, GeminiScribe(api_key="k", client=fake)))
        assert os.listdir(outputs["speech_dir"]) == ["seg_001.wav"]

    def test_translation_failure_keeps_transcript(self, audio_file, tmp_path):
        config = ScribeConfig(
            audio_path=audio_file, output_dir=str(tmp_path / "out"), target_language="Spanish"
        )
        fake = FakeClient(text_response(TRANSCRIPT), text_response(""))

        outputs = asyncio.run(main.run_pipeline(config, GeminiScribe(api_key="k", client=fake)))

        assert set(outputs) == {"json", "srt"}

    def test_cancelled(self, audio_file, tmp_path):
        config = ScribeConfig(audio_path=audio_file, output_dir=str(tmp_path / "out"))
        fake = FakeClient(text_response(TRANSCRIPT))
        token = CancellationToken()
        token.cancel()
        with pytest.raises(TranscriptionCancelled):
            asyncio.run(main.run_pipeline(config, GeminiScribe(api_key="k", client=fake), token))
        assert not os.path.exists(tmp_path / "out")

    def test_missing_audio(self, tmp_path):
        config = ScribeConfig(audio_path=str(tmp_path / "missing.wav"))
        with pytest.raises(ConfigurationError):
            asyncio.run(main.run_pipeline(config, GeminiScribe(api_key="k", client=FakeClient())))


class TestRunFromConfig:

    def test_bad_config_exit_code(self, tmp_path):
        assert main.run_from_config(str(tmp_path / "missing.json")) == 1
