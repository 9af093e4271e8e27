import base64
import binascii
import io
import os
import subprocess
import wave
from typing import Optional

from .exceptions import SpeechSynthesisError

# Synthesized speech is mono 16-bit PCM at 24 kHz.
SPEECH_SAMPLE_RATE = 24000
SPEECH_CHANNELS = 1
SPEECH_SAMPLE_WIDTH = 2


def guess_mime_type(path: str) -> str:
    """Guess the MIME type of an audio file from its extension."""
    ext = os.path.splitext(path)[1].lower()
    if ext in (".mp3",):
        return "audio/mp3"
    if ext in (".m4a", ".mp4", ".aac"):
        return "audio/mp4"
    if ext in (".wav",):
        return "audio/wav"
    if ext in (".flac",):
        return "audio/flac"
    if ext in (".ogg", ".oga"):
        return "audio/ogg"
    if ext in (".webm",):
        return "audio/webm"
    return "application/octet-stream"


def get_audio_duration_ms(audio_path: str) -> Optional[int]:
    """Return audio duration in ms via ffprobe; None if unavailable."""
    try:
        result = subprocess.run(
            [
                "ffprobe", "-v", "error", "-show_entries", "format=duration",
                "-of", "default=nw=1:nk=1", audio_path,
            ],
            capture_output=True, text=True, check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    val = result.stdout.strip()
    if not val:
        return None
    try:
        return int(round(float(val) * 1000))
    except ValueError:
        return None


def pcm_to_wav_bytes(pcm_base64: str, sample_rate: int = SPEECH_SAMPLE_RATE) -> bytes:
    """Wrap base64 raw PCM (as returned by speech synthesis) in a WAV container."""
    try:
        pcm = base64.b64decode(pcm_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SpeechSynthesisError(f"Synthesized audio is not valid base64: {e}") from e
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(SPEECH_CHANNELS)
        wav.setsampwidth(SPEECH_SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buf.getvalue()


def write_wav(pcm_base64: str, out_path: str, sample_rate: int = SPEECH_SAMPLE_RATE) -> str:
    data = pcm_to_wav_bytes(pcm_base64, sample_rate=sample_rate)
    parent = os.path.dirname(out_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(out_path, "wb") as f:
        f.write(data)
    return out_path
