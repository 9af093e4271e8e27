"""Transcript checks and SRT/JSON export."""

import json
import os
from typing import Dict, List, Sequence

from .models import TranscriptionSegment
from .timestamps import ms_to_srt_time, timestamp_to_ms


def find_timing_issues(segments: Sequence[TranscriptionSegment],
                       max_duration_ms: int = 20 * 1000) -> Dict[str, List[int]]:
    """Report segment indexes with suspicious timing. Nothing is rewritten."""
    issues: Dict[str, List[int]] = {
        'non_monotonic': [],
        'negative_or_zero': [],
        'too_long': [],
        'empty_text': [],
    }
    prev_start = -1
    for i, seg in enumerate(segments):
        s = timestamp_to_ms(seg.start_time)
        e = timestamp_to_ms(seg.end_time)
        if s >= e:
            issues['negative_or_zero'].append(i)
        if s < prev_start:
            issues['non_monotonic'].append(i)
        if (e - s) > max_duration_ms:
            issues['too_long'].append(i)
        if not seg.text.strip():
            issues['empty_text'].append(i)
        prev_start = s
    return issues


def find_translation_mismatches(source: Sequence[TranscriptionSegment],
                                translated: Sequence[TranscriptionSegment]) -> List[str]:
    """Compare a translation with its source segment by segment.

    Returns one message per problem: a different segment count, or a start/end
    timestamp that differs at the same position.
    """
    problems: List[str] = []
    if len(source) != len(translated):
        problems.append(
            f"segment count changed: {len(source)} in, {len(translated)} out"
        )
    for i, (src, out) in enumerate(zip(source, translated)):
        if src.start_time != out.start_time or src.end_time != out.end_time:
            problems.append(
                f"segment {i}: timestamps {src.start_time}-{src.end_time} "
                f"returned as {out.start_time}-{out.end_time}"
            )
    return problems


def segments_to_srt(segments: Sequence[TranscriptionSegment], translated: bool = False) -> str:
    """Render segments as SRT, in list order.

    With ``translated`` the translated text is used where present.
    """
    blocks: List[str] = []
    for i, seg in enumerate(segments, start=1):
        text = seg.translated_text if translated and seg.translated_text else seg.text
        s = ms_to_srt_time(timestamp_to_ms(seg.start_time))
        e = ms_to_srt_time(timestamp_to_ms(seg.end_time))
        blocks.append(f"{i}\n{s} --> {e}\n{text}\n")
    return "\n".join(blocks)


def write_srt(segments: Sequence[TranscriptionSegment], out_path: str,
              translated: bool = False) -> str:
    _ensure_parent(out_path)
    with open(out_path, 'w', encoding='utf-8') as f:
        f.write(segments_to_srt(segments, translated=translated))
    return out_path


def write_json(segments: Sequence[TranscriptionSegment], out_path: str) -> str:
    _ensure_parent(out_path)
    with open(out_path, 'w', encoding='utf-8') as f:
        json.dump({"segments": [s.to_dict() for s in segments]}, f,
                  ensure_ascii=False, indent=2)
    return out_path


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
