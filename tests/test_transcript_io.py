import base64
import json
import wave

import pytest

from scribe.audio_utils import SPEECH_SAMPLE_RATE, guess_mime_type, pcm_to_wav_bytes, write_wav
from scribe.exceptions import SpeechSynthesisError
from scribe.models import TranscriptionSegment
from scribe.transcript_io import (
    find_timing_issues,
    find_translation_mismatches,
    segments_to_srt,
    write_json,
    write_srt,
)


@pytest.fixture
def segments():
    return [
        TranscriptionSegment("00:00:00.500", "00:00:02.100", "hello there", "hola"),
        TranscriptionSegment("00:00:02.300", "00:00:03.900", "hello there"),
    ]


class TestSrtExport:

    def test_segments_to_srt(self, segments):
        assert segments_to_srt(segments) == (
            "1\n00:00:00,500 --> 00:00:02,100\nhello there\n"
            "\n"
            "2\n00:00:02,300 --> 00:00:03,900\nhello there\n"
        )

    def test_translated_falls_back_to_original(self, segments):
        srt = segments_to_srt(segments, translated=True)
        assert "\nhola\n" in srt
        assert srt.endswith("hello there\n")

    def test_write_srt_creates_directory(self, segments, tmp_path):
        out = write_srt(segments, str(tmp_path / "out" / "a.srt"))
        with open(out, encoding="utf-8") as f:
            assert f.read().startswith("1\n00:00:00,500")


class TestJsonExport:

    def test_write_json_uses_wire_names(self, segments, tmp_path):
        path = write_json(segments, str(tmp_path / "a.json"))
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["segments"] == [
            {"startTime": "00:00:00.500", "endTime": "00:00:02.100",
             "text": "hello there", "translatedText": "hola"},
            {"startTime": "00:00:02.300", "endTime": "00:00:03.900", "text": "hello there"},
        ]


class TestChecks:

    def test_timing_issues_reported_not_fixed(self):
        segs = [
            TranscriptionSegment("00:00:05.000", "00:00:04.000", "backwards"),
            TranscriptionSegment("00:00:01.000", "00:00:30.000", "long"),
            TranscriptionSegment("00:00:31.000", "00:00:32.000", " "),
        ]
        issues = find_timing_issues(segs)
        assert issues["negative_or_zero"] == [0]
        assert issues["non_monotonic"] == [1]
        assert issues["too_long"] == [1]
        assert issues["empty_text"] == [2]
        assert segs[0].start_time == "00:00:05.000"

    def test_translation_mismatches(self, segments):
        same = [TranscriptionSegment(s.start_time, s.end_time, s.text, "x") for s in segments]
        assert find_translation_mismatches(segments, same) == []

        shifted = [TranscriptionSegment("00:00:00.600", "00:00:02.100", "hello there", "x")]
        problems = find_translation_mismatches(segments, shifted)
        assert problems[0] == "segment count changed: 2 in, 1 out"
        assert problems[1].startswith("segment 0: timestamps 00:00:00.500-00:00:02.100")


class TestAudioUtils:

    @pytest.mark.parametrize("path, expected", [
        ("a.mp3", "audio/mp3"),
        ("a.M4A", "audio/mp4"),
        ("a.wav", "audio/wav"),
        ("a.webm", "audio/webm"),
        ("a.bin", "application/octet-stream"),
    ])
    def test_guess_mime_type(self, path, expected):
        assert guess_mime_type(path) == expected

    def test_write_wav(self, tmp_path):
        pcm = b"\x01\x00" * 240
        out = write_wav(base64.b64encode(pcm).decode("ascii"), str(tmp_path / "speech" / "s.wav"))
        with wave.open(out, "rb") as wav:
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getframerate() == SPEECH_SAMPLE_RATE
            assert wav.readframes(wav.getnframes()) == pcm

    def test_invalid_base64(self):
        with pytest.raises(SpeechSynthesisError):
            pcm_to_wav_bytes("not base64!!")
