from __future__ import annotations

import json
import re
from typing import Iterable, NamedTuple

from .models import TranscriptionResult


class AssembledTranscript(NamedTuple):
    ordered: list[TranscriptionResult]
    text_report: str
    json_report: str


LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def _one_line(value: str) -> str:
    return LINE_BREAKS.sub(" ", value).strip()


def format_time_range(result: TranscriptionResult) -> str:
    return f"[{result.segment.start_sec:.1f}s-{result.segment.end_sec:.1f}s]"


def format_line(result: TranscriptionResult) -> str:
    prefix = format_time_range(result)
    if result.error is not None:
        return f"{prefix} ERROR: {_one_line(result.error)}"
    return f"{prefix} {_one_line(result.text)}"


def order_results(results: Iterable[TranscriptionResult]) -> list[TranscriptionResult]:
    # sorted() is stable, so equal start times keep their slot order.
    return sorted(results, key=lambda result: result.segment.start_sec)


def render_text(ordered: Iterable[TranscriptionResult]) -> str:
    return "".join(f"{format_line(result)}\n" for result in ordered)


def render_json(ordered: Iterable[TranscriptionResult]) -> str:
    return json.dumps([result.to_dict() for result in ordered], ensure_ascii=False, indent=2)


def assemble(results: Iterable[TranscriptionResult]) -> AssembledTranscript:
    ordered = order_results(results)
    return AssembledTranscript(
        ordered=ordered,
        text_report=render_text(ordered),
        json_report=render_json(ordered),
    )
