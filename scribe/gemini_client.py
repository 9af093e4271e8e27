"""Transcription, translation and speech synthesis calls to the Gemini API."""

import asyncio
import base64
import json
import logging
import time
from typing import Any, List, Optional, Sequence, Union

from google import genai
from google.genai import errors, types

from .cancellation import CancellationToken, run_cancellable
from .config import (
    DEFAULT_TRANSLATION_MODEL,
    DEFAULT_TTS_MODEL,
    DEFAULT_VOICE_NAME,
    INTEGRITY_MODES,
    ScribeConfig,
    resolve_api_key,
)
from .exceptions import (
    ConfigurationError,
    EmptyResponseError,
    ProviderError,
    ScribeError,
    SpeechSynthesisError,
    TranscriptionCancelled,
    TranscriptionError,
    TranslationError,
    TranslationIntegrityError,
    UnrecoverableResponseError,
)
from .models import TranscriptionSegment
from .prompts import (
    THINKING_BUDGET,
    THINKING_MODEL_MARKER,
    TRANSCRIPTION_PROMPT,
    TRANSCRIPTION_SCHEMA,
    TRANSLATION_PROMPT_TEMPLATE,
    TRANSLATION_SCHEMA,
)
from .recovery import parse_segments_document, recover_segments, strip_code_fences
from .timestamps import normalize_timestamp
from .transcript_io import find_translation_mismatches

logger = logging.getLogger(__name__)


def _provider_error(exc: errors.APIError, fallback: str) -> ProviderError:
    message = getattr(exc, "message", None) or str(exc) or fallback
    return ProviderError(message, code=getattr(exc, "code", None))


def _response_text(response: Any) -> str:
    return (getattr(response, "text", None) or "").strip()


def _inline_audio(response: Any) -> Optional[Any]:
    """Return the inline audio data of the first candidate part, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return None
    inline = getattr(parts[0], "inline_data", None)
    return getattr(inline, "data", None) if inline is not None else None


def _to_segment(raw: Any) -> TranscriptionSegment:
    if not isinstance(raw, dict):
        raw = {}
    return TranscriptionSegment(
        start_time=normalize_timestamp(raw.get("startTime")),
        end_time=normalize_timestamp(raw.get("endTime")),
        text=str(raw.get("text")),
    )


class GeminiScribe:
    """Client for the three model operations.

    The credential is resolved once, when the instance is built. The SDK client
    itself is created on the first request, so a missing key only fails there.
    Pass ``client`` to use a preconfigured (or fake) SDK client.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Any = None,
        translation_model: str = DEFAULT_TRANSLATION_MODEL,
        tts_model: str = DEFAULT_TTS_MODEL,
        voice_name: str = DEFAULT_VOICE_NAME,
        request_timeout_s: Optional[float] = None,
        translation_integrity: str = "warn",
    ):
        if translation_integrity not in INTEGRITY_MODES:
            raise ConfigurationError(
                f"translation_integrity must be one of {', '.join(INTEGRITY_MODES)}"
            )
        self.api_key = api_key if api_key is not None else resolve_api_key()
        self._client = client
        self.translation_model = translation_model
        self.tts_model = tts_model
        self.voice_name = voice_name
        self.request_timeout_s = request_timeout_s
        self.translation_integrity = translation_integrity

    @classmethod
    def from_config(cls, config: ScribeConfig, client: Any = None) -> "GeminiScribe":
        return cls(
            client=client,
            translation_model=config.translation_model,
            tts_model=config.tts_model,
            voice_name=config.voice_name,
            request_timeout_s=config.request_timeout_s,
            translation_integrity=config.translation_integrity,
        )

    @property
    def client(self):
        if self._client is None:
            # genai.Client falls back to GOOGLE_API_KEY/GEMINI_API_KEY when no key is given
            self._client = genai.Client(api_key=self.api_key) if self.api_key else genai.Client()
        return self._client

    async def _generate(self, model: str, contents: list, config: types.GenerateContentConfig):
        call = self.client.aio.models.generate_content(
            model=model, contents=contents, config=config
        )
        if not self.request_timeout_s:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout_s)
        except asyncio.TimeoutError:
            raise ProviderError(f"Request timed out after {self.request_timeout_s}s")

    def _transcription_config(self, model_name: str) -> types.GenerateContentConfig:
        thinking = None
        if THINKING_MODEL_MARKER in model_name:
            thinking = types.ThinkingConfig(thinking_budget=THINKING_BUDGET)
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=TRANSCRIPTION_SCHEMA,
            temperature=0,
            thinking_config=thinking,
        )

    async def transcribe(
        self,
        model_name: str,
        audio: Union[bytes, bytearray, str],
        mime_type: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[TranscriptionSegment]:
        """Transcribe audio into an ordered list of segments.

        ``audio`` is raw bytes or a base64 string. Raises TranscriptionCancelled
        if ``cancel_token`` fires before the response arrives; any response that
        arrives afterwards is discarded.
        """
        t0 = time.time()
        try:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            audio_bytes = base64.b64decode(audio) if isinstance(audio, str) else bytes(audio)
            contents = [
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_bytes(data=audio_bytes, mime_type=mime_type),
                        types.Part.from_text(text=TRANSCRIPTION_PROMPT),
                    ],
                )
            ]
            response = await run_cancellable(
                self._generate(model_name, contents, self._transcription_config(model_name)),
                cancel_token,
            )

            text = _response_text(response)
            if not text:
                raise EmptyResponseError("Empty response from model")

            recovered = recover_segments(strip_code_fences(text))
            segments = [_to_segment(raw) for raw in recovered.segments]
            logger.info(
                "[TR] %s ok %.1fs: %d segments (%s)",
                model_name, time.time() - t0, len(segments), recovered.tier.value,
            )
            return segments
        except TranscriptionCancelled:
            raise
        except (EmptyResponseError, UnrecoverableResponseError, ProviderError):
            logger.error("[TR] %s failed after %.1fs", model_name, time.time() - t0, exc_info=True)
            raise
        except errors.APIError as exc:
            logger.error("[TR] %s provider error: %s", model_name, exc)
            raise _provider_error(exc, "Transcription failed") from exc
        except Exception as exc:
            logger.error("[TR] Error with %s: %s", model_name, exc, exc_info=True)
            raise TranscriptionError(str(exc) or "Transcription failed") from exc

    async def translate(
        self, segments: Sequence[TranscriptionSegment], target_language: str
    ) -> List[TranscriptionSegment]:
        """Translate segments, keeping their timestamps.

        The returned list is rebuilt from the model response. Timestamps are not
        re-normalized; they are compared with the input according to
        ``translation_integrity``.
        """
        segments_json = json.dumps([s.to_dict() for s in segments], ensure_ascii=False)
        prompt = TRANSLATION_PROMPT_TEMPLATE.format(
            target_language=target_language, segments_json=segments_json
        )
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=TRANSLATION_SCHEMA,
        )
        t0 = time.time()
        try:
            response = await self._generate(
                self.translation_model,
                [types.Content(role="user", parts=[types.Part.from_text(text=prompt)])],
                config,
            )
        except ScribeError:
            raise
        except errors.APIError as exc:
            logger.error("[TL] translation provider error: %s", exc)
            raise _provider_error(exc, "Translation failed") from exc
        except Exception as exc:
            logger.error("[TL] Translation error: %s", exc, exc_info=True)
            raise TranslationError(str(exc) or "Translation failed") from exc

        text = _response_text(response)
        if not text:
            raise TranslationError("Empty translation response")
        items = parse_segments_document(strip_code_fences(text))
        if items is None:
            raise TranslationError("Translation response could not be parsed")

        translated = [TranscriptionSegment.from_dict(i) for i in items if isinstance(i, dict)]
        logger.info(
            "[TL] %s ok %.1fs: %d segments -> %s",
            self.translation_model, time.time() - t0, len(translated), target_language,
        )
        self._check_integrity(segments, translated)
        return translated

    def _check_integrity(self, source, translated) -> None:
        if self.translation_integrity == "off":
            return
        mismatches = find_translation_mismatches(source, translated)
        if not mismatches:
            return
        if self.translation_integrity == "strict":
            raise TranslationIntegrityError(
                f"Translation changed {len(mismatches)} segment(s)", mismatches
            )
        for issue in mismatches:
            logger.warning("[TL] integrity: %s", issue)

    async def synthesize(self, text: str) -> Optional[str]:
        """Synthesize speech for ``text``.

        Returns base64 mono 16-bit PCM at 24 kHz, or None when the response
        carries no audio. Every call issues its own request.
        """
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice_name)
                )
            ),
        )
        try:
            response = await self._generate(
                self.tts_model,
                [types.Content(role="user", parts=[types.Part.from_text(text=text)])],
                config,
            )
        except ScribeError:
            raise
        except errors.APIError as exc:
            logger.error("[TTS] provider error: %s", exc)
            raise _provider_error(exc, "Speech synthesis failed") from exc
        except Exception as exc:
            logger.error("[TTS] error: %s", exc, exc_info=True)
            raise SpeechSynthesisError(str(exc) or "Speech synthesis failed") from exc

        data = _inline_audio(response)
        if data is None:
            logger.warning("[TTS] response carried no audio")
            return None
        if isinstance(data, (bytes, bytearray)):
            return base64.b64encode(bytes(data)).decode("ascii")
        return str(data)
