from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable

from .models import Segment

logger = logging.getLogger(__name__)


def segment_filename(idx: int, start_sec: float, end_sec: float, suffix: str) -> str:
    return f"segment_{idx:03d}_{start_sec:.1f}-{end_sec:.1f}{suffix}"


def _make_segment(idx: int, start_sec: float, end_sec: float, output_dir: Path, suffix: str) -> Segment:
    path = output_dir / segment_filename(idx, start_sec, end_sec, suffix)
    return Segment(idx=idx, start_sec=start_sec, end_sec=end_sec, path=str(path))


def _candidate_boundaries(silence_points: Iterable[float], total_duration: float) -> list[float]:
    # The detector yields ascending points, but nothing downstream may rely on it.
    return sorted(p for p in silence_points if math.isfinite(p) and 0 < p < total_duration)


def plan_segments(
    silence_points: Iterable[float],
    total_duration: float,
    *,
    min_segment_sec: float,
    max_segment_sec: float,
    output_dir: Path,
    suffix: str = ".wav",
) -> list[Segment]:
    """Cut the recording at silence boundaries, then bound every piece to max_segment_sec.

    Audio after the last accepted boundary that is shorter than min_segment_sec
    is left out of the plan, so the plan may not cover the full recording.
    """
    if min_segment_sec <= 0:
        raise ValueError("min_segment_sec must be positive")
    if max_segment_sec <= 0:
        raise ValueError("max_segment_sec must be positive")

    raw: list[Segment] = []
    current_start = 0.0
    for boundary in _candidate_boundaries(silence_points, total_duration):
        if boundary - current_start >= min_segment_sec:
            raw.append(_make_segment(len(raw), current_start, boundary, output_dir, suffix))
            current_start = boundary

    tail = total_duration - current_start
    if tail >= min_segment_sec:
        raw.append(_make_segment(len(raw), current_start, total_duration, output_dir, suffix))
    elif tail > 0:
        logger.info("Dropping %.1fs of trailing audio after %.1fs (shorter than %.1fs)", tail, current_start, min_segment_sec)

    return split_long_segments(raw, max_segment_sec=max_segment_sec, output_dir=output_dir, suffix=suffix)


def split_long_segments(
    segments: Iterable[Segment],
    *,
    max_segment_sec: float,
    output_dir: Path,
    suffix: str = ".wav",
) -> list[Segment]:
    result: list[Segment] = []

    for segment in segments:
        if segment.duration_sec <= max_segment_sec:
            result.append(_make_segment(len(result), segment.start_sec, segment.end_sec, output_dir, suffix))
            continue

        parts = math.ceil(segment.duration_sec / max_segment_sec)
        width = segment.duration_sec / parts
        for i in range(parts):
            start = segment.start_sec + i * width
            # Last part ends exactly at the original end so no rounding gap opens up.
            end = segment.end_sec if i == parts - 1 else segment.start_sec + (i + 1) * width
            result.append(_make_segment(len(result), start, end, output_dir, suffix))

    return result
