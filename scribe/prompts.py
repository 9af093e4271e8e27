"""Prompt text and response schemas for the model requests."""

from typing import Optional

from google.genai import types

TIMING_POLICY = """STRICT TIMING POLICY:
1. ANTI-DRIFT: Do NOT predict timestamps based on patterns or rhythm. Use the ACTUAL vocal onset for 'startTime'.
2. REPETITION HANDLING: If several lines start with the same text, DO NOT advance the next timestamp early. Each repetition must wait for its own audio cue.
3. TEMPORAL ISOLATION: The 'endTime' of a segment must be exactly when the voice stops.
4. NO HALLUCINATION: If there is silence between repetitions, the timestamps must show that silence.
"""

VERBATIM_POLICY = """VERBATIM & SEGMENTATION:
1. GRANULAR SEGMENTS: Keep every segment shorter than 5 seconds.
2. FULL VERBATIM: Transcribe every word, including "uh", "umm", false starts and repeated phrases.
3. NO DEDUPLICATION: If a phrase is said 3 times, output 3 distinct segments.
"""

JSON_SAFETY_POLICY = """JSON FORMATTING SAFETY:
1. TEXT ESCAPING: The 'text' value MUST be wrapped in DOUBLE QUOTES (").
2. INTERNAL QUOTES: If the text contains a double quote, escape it (\\").
3. SINGLE QUOTES: Single quotes (') may appear inside the text but MUST NOT break the JSON structure.
4. NO SINGLE QUOTE KEYS: Never use single quotes for keys (use "startTime", NOT 'startTime').
"""

TRANSCRIPTION_PROMPT = f"""Role: High-precision audio transcriber.
Task: Transcribe the audio with millisecond-accurate timestamps.

{TIMING_POLICY}
{VERBATIM_POLICY}
{JSON_SAFETY_POLICY}
REQUIRED FORMAT: a JSON object with a "segments" array.
Use HH:MM:SS.mmm for all timestamps (e.g. 00:00:01.234).
"""

TRANSLATION_PROMPT_TEMPLATE = """Translate the following segments into {target_language}.
CRITICAL: Do NOT modify the timestamps. Return every 'startTime' and 'endTime' exactly as given, in HH:MM:SS.mmm format.
Keep the same number of segments in the same order. Put the translation in 'translatedText' and keep the original 'text' unchanged.
Data: {segments_json}
"""

# Models whose name contains this marker get an explicit thinking budget.
THINKING_MODEL_MARKER = "gemini-3"
THINKING_BUDGET = 4096


def _string_field(description: Optional[str] = None) -> types.Schema:
    return types.Schema(type=types.Type.STRING, description=description)


def _segments_schema(fields: dict, required: list) -> types.Schema:
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "segments": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(
                    type=types.Type.OBJECT,
                    properties=fields,
                    required=required,
                ),
            ),
        },
        required=["segments"],
    )


TRANSCRIPTION_SCHEMA = _segments_schema(
    {
        "startTime": _string_field(
            "Start timestamp. MUST use HH:MM:SS.mmm format (e.g. '00:00:01.234')."
        ),
        "endTime": _string_field(
            "End timestamp. MUST use HH:MM:SS.mmm format (e.g. '00:00:04.567')."
        ),
        "text": _string_field("Transcribed text."),
    },
    ["startTime", "endTime", "text"],
)

TRANSLATION_SCHEMA = _segments_schema(
    {
        "startTime": _string_field(),
        "endTime": _string_field(),
        "text": _string_field(),
        "translatedText": _string_field(),
    },
    ["startTime", "endTime", "text", "translatedText"],
)
