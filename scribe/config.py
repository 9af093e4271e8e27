"""Configuration loading for the transcription runner."""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_TRANSCRIPTION_MODEL = "gemini-2.5-flash"
DEFAULT_TRANSLATION_MODEL = "gemini-3-flash-preview"
DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_VOICE_NAME = "Zephyr"

# Checked in order; the first one set wins.
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")

INTEGRITY_MODES = ("warn", "strict", "off")


def resolve_api_key() -> Optional[str]:
    """Read the API credential from the environment (after loading .env).

    Returns None when no credential is set; the request that needs it fails later.
    """
    load_dotenv()
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass
class ScribeConfig:
    """Configuration for one transcription run."""
    audio_path: str
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    translation_model: str = DEFAULT_TRANSLATION_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    voice_name: str = DEFAULT_VOICE_NAME
    mime_type: Optional[str] = None
    target_language: Optional[str] = None
    speak: bool = False
    output_dir: str = "output"
    request_timeout_s: Optional[float] = None
    translation_integrity: str = "warn"
    log_level: str = "INFO"
    log_file: Optional[str] = None


def load_config(path: str = DEFAULT_CONFIG_PATH) -> ScribeConfig:
    """Load run configuration from a JSON file.

    Raises:
        ConfigurationError: missing/unreadable file, invalid JSON, missing
            ``audio_path`` or an invalid value.
    """
    if not os.path.isfile(path):
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read configuration file {path}: {e}") from e

    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Invalid structure in {path}: root must be an object")
    if not cfg.get("audio_path"):
        raise ConfigurationError("audio_path must be specified in config")

    integrity = str(cfg.get("translation_integrity", "warn")).lower()
    if integrity not in INTEGRITY_MODES:
        raise ConfigurationError(
            f"translation_integrity must be one of {', '.join(INTEGRITY_MODES)}, got {integrity!r}"
        )

    timeout = cfg.get("request_timeout_s")
    try:
        timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"request_timeout_s must be a number, got {timeout!r}") from e

    config = ScribeConfig(
        audio_path=cfg["audio_path"],
        transcription_model=cfg.get("transcription_model") or DEFAULT_TRANSCRIPTION_MODEL,
        translation_model=cfg.get("translation_model") or DEFAULT_TRANSLATION_MODEL,
        tts_model=cfg.get("tts_model") or DEFAULT_TTS_MODEL,
        voice_name=cfg.get("voice_name") or DEFAULT_VOICE_NAME,
        mime_type=cfg.get("mime_type"),
        target_language=cfg.get("target_language"),
        speak=bool(cfg.get("speak", False)),
        output_dir=cfg.get("output_dir", "output"),
        request_timeout_s=timeout,
        translation_integrity=integrity,
        log_level=str(cfg.get("log_level", "INFO")).upper(),
        log_file=cfg.get("log_file"),
    )
    logger.debug("Loaded configuration from %s: %s", path, config)
    return config
