"""Error types raised by the transcription pipeline."""

from typing import Optional

RATE_LIMIT_ERRORS = (
    "429",
    "rate limit",
    "exceeded",
    "quota",
    "Resource has been exhausted",
)


class ScribeError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ScribeError):
    """Invalid or missing configuration."""


class TranscriptionCancelled(ScribeError):
    """The caller cancelled the request before it settled."""

    def __init__(self, message: str = "Transcription cancelled"):
        super().__init__(message)


class EmptyResponseError(ScribeError):
    """The model returned no text."""


class UnrecoverableResponseError(ScribeError):
    """No segment could be recovered from the model output."""


class ProviderError(ScribeError):
    """Network, auth, quota or other failure reported by the model provider."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code

    @property
    def rate_limited(self) -> bool:
        if self.code == 429:
            return True
        msg = str(self).lower()
        return any(marker.lower() in msg for marker in RATE_LIMIT_ERRORS)


class TranscriptionError(ScribeError):
    """Any other failure while transcribing."""


class TranslationError(ScribeError):
    """Translation response was empty or could not be parsed."""


class TranslationIntegrityError(TranslationError):
    """Translated segments do not line up with the source segments."""

    def __init__(self, message: str, mismatches=None):
        super().__init__(message)
        self.mismatches = list(mismatches or [])


class SpeechSynthesisError(ScribeError):
    """Speech synthesis failed outside the provider call."""
