"""Main entry point for the transcription runner."""

import argparse
import asyncio
import logging
import os
import signal
import sys
import time
from typing import Dict, List, Optional

from scribe.audio_utils import get_audio_duration_ms, guess_mime_type, write_wav
from scribe.cancellation import CancellationToken
from scribe.config import DEFAULT_CONFIG_PATH, ScribeConfig, load_config
from scribe.exceptions import (
    ConfigurationError,
    ProviderError,
    ScribeError,
    TranscriptionCancelled,
    TranslationError,
)
from scribe.gemini_client import GeminiScribe
from scribe.log_setup import setup_logging
from scribe.models import TranscriptionSegment
from scribe.transcript_io import find_timing_issues, write_json, write_srt

logger = logging.getLogger(__name__)


def _log_timing_issues(segments: List[TranscriptionSegment]) -> None:
    for kind, indexes in find_timing_issues(segments).items():
        if indexes:
            logger.warning("[CHECK] %s: segments %s", kind, indexes)


async def speak_segments(
    scribe: GeminiScribe,
    segments: List[TranscriptionSegment],
    out_dir: str,
    cancel_token: Optional[CancellationToken] = None,
) -> List[str]:
    """Synthesize each translated line, one request at a time.

    A failed segment is logged and skipped so the remaining ones still run.
    """
    written: List[str] = []
    for i, seg in enumerate(segments):
        if not seg.translated_text:
            continue
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            audio = await scribe.synthesize(seg.translated_text)
            if not audio:
                logger.warning("[TTS] seg %d: no audio data", i)
                continue
            written.append(write_wav(audio, os.path.join(out_dir, f"seg_{i:03d}.wav")))
        except ScribeError as e:
            if isinstance(e, ProviderError) and e.rate_limited:
                logger.error("[TTS] seg %d rate limited, skipping: %s", i, e)
            else:
                logger.error("[TTS] seg %d failed: %s", i, e)
    return written


async def run_pipeline(
    config: ScribeConfig,
    scribe: GeminiScribe,
    cancel_token: Optional[CancellationToken] = None,
) -> Dict[str, str]:
    """Transcribe, optionally translate and speak; return the written file paths."""
    if not os.path.isfile(config.audio_path):
        raise ConfigurationError(f"Audio file not found: {config.audio_path}")
    with open(config.audio_path, "rb") as f:
        audio_bytes = f.read()
    mime_type = config.mime_type or guess_mime_type(config.audio_path)
    duration_ms = get_audio_duration_ms(config.audio_path)
    logger.info(
        "[TR] start %s (%s, %s)",
        config.audio_path, mime_type,
        f"{duration_ms / 1000:.1f}s" if duration_ms is not None else "unknown duration",
    )

    segments = await scribe.transcribe(
        config.transcription_model, audio_bytes, mime_type, cancel_token
    )
    _log_timing_issues(segments)

    base_name = os.path.splitext(os.path.basename(config.audio_path))[0]
    outputs = {
        "json": write_json(segments, os.path.join(config.output_dir, base_name + ".json")),
        "srt": write_srt(segments, os.path.join(config.output_dir, base_name + ".srt")),
    }

    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    if config.target_language:
        try:
            translated = await scribe.translate(segments, config.target_language)
        except (TranslationError, ProviderError) as e:
            logger.error("[TL] translation failed, keeping original transcript: %s", e)
        else:
            lang = config.target_language.lower().replace(" ", "_")
            outputs["translated_json"] = write_json(
                translated, os.path.join(config.output_dir, f"{base_name}.{lang}.json")
            )
            outputs["translated_srt"] = write_srt(
                translated, os.path.join(config.output_dir, f"{base_name}.{lang}.srt"),
                translated=True,
            )
            if config.speak:
                speech_dir = os.path.join(config.output_dir, "speech")
                written = await speak_segments(scribe, translated, speech_dir, cancel_token)
                if written:
                    outputs["speech_dir"] = speech_dir
    elif config.speak:
        logger.warning("'speak' needs 'target_language'; skipping speech synthesis")

    return outputs


async def _main(config: ScribeConfig) -> Dict[str, str]:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted by user")
    except (NotImplementedError, RuntimeError):
        pass
    scribe = GeminiScribe.from_config(config)
    return await run_pipeline(config, scribe, token)


def run_from_config(config_path: str = DEFAULT_CONFIG_PATH) -> int:
    """Load configuration from JSON and run the pipeline. Returns an exit code."""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        setup_logging()
        logger.critical("Failed to load configuration: %s", e)
        return 1

    setup_logging(config.log_level, config.log_file)
    t0 = time.time()
    try:
        outputs = asyncio.run(_main(config))
    except TranscriptionCancelled:
        logger.info("Transcription cancelled.")
        return 130
    except ScribeError as e:
        logger.error("Run failed: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
        return 130
    except Exception as e:
        logger.critical("Unexpected error: %s", e, exc_info=True)
        return 2

    for kind, path in outputs.items():
        logger.info("[OUT] %s: %s", kind, path)
    logger.info("Done in %.1fs", time.time() - t0)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Transcribe audio with timestamped segments, optionally translate and speak them."
    )
    parser.add_argument(
        "-c", "--config", default=DEFAULT_CONFIG_PATH, help="Path to the JSON configuration file."
    )
    args = parser.parse_args(argv)
    return run_from_config(args.config)


if __name__ == "__main__":
    sys.exit(main())
