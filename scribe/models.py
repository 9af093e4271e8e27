"""Data models for open_scribe."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class TranscriptionSegment:
    """One time-bounded span of speech.

    Timestamps are canonical HH:MM:SS.mmm strings. ``end_time >= start_time``
    is expected from the model but not enforced here.
    """
    start_time: str
    end_time: str
    text: str
    translated_text: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        """Wire representation (camelCase keys, as sent to and read from the model)."""
        data = {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "text": self.text,
        }
        if self.translated_text is not None:
            data["translatedText"] = self.translated_text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptionSegment":
        translated = data.get("translatedText")
        return cls(
            start_time=str(data.get("startTime", "")),
            end_time=str(data.get("endTime", "")),
            text=str(data.get("text", "")),
            translated_text=None if translated is None else str(translated),
        )
