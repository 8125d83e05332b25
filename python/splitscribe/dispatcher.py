from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Sequence, cast

from .audio import probe_duration_seconds
from .models import Segment, TranscriptionResult

logger = logging.getLogger(__name__)

RUNNING = "running"
SUCCEEDED = "succeeded"
FAILED = "failed"

TranscribeFn = Callable[[str, float], str]
ProbeFn = Callable[[Path | str], float]
StateCallback = Callable[[Segment, str], None]


def _notify(on_state: StateCallback | None, segment: Segment, state: str) -> None:
    if on_state is None:
        return
    try:
        on_state(segment, state)
    except Exception as exc:  # noqa: BLE001 - reporting must not change the outcome
        logger.warning("State callback failed for %s (%s): %s", segment.filename, state, exc)


def transcribe_segment(
    segment: Segment,
    transcribe: TranscribeFn,
    *,
    probe: ProbeFn = probe_duration_seconds,
    on_state: StateCallback | None = None,
) -> TranscriptionResult:
    _notify(on_state, segment, RUNNING)
    try:
        # The measured length drives the engine's minimum speech hint.
        measured = probe(segment.path)
        logger.debug("Segment %s measures %.2fs (planned %.2fs)", segment.filename, measured, segment.duration_sec)
        text = transcribe(segment.path, measured)
    except Exception as exc:  # noqa: BLE001 - failures stay in this segment's slot
        logger.warning("Transcription failed for %s: %s", segment.filename, exc)
        result = TranscriptionResult.failed(segment, str(exc))
    else:
        result = TranscriptionResult.succeeded(segment, text)

    _notify(on_state, segment, SUCCEEDED if result.ok else FAILED)
    return result


def transcribe_all(
    plan: Sequence[Segment],
    transcribe: TranscribeFn,
    *,
    concurrency: int,
    probe: ProbeFn = probe_duration_seconds,
    on_state: StateCallback | None = None,
) -> list[TranscriptionResult]:
    """Transcribe every planned segment on a bounded thread pool.

    Slot ``i`` of the returned list always belongs to ``plan[i]``; completion
    order has no influence on it.
    """
    results: list[TranscriptionResult | None] = [None] * len(plan)

    def _work(slot: int) -> None:
        results[slot] = transcribe_segment(plan[slot], transcribe, probe=probe, on_state=on_state)

    with ThreadPoolExecutor(max_workers=max(1, concurrency), thread_name_prefix="tx-worker") as executor:
        futures = [executor.submit(_work, slot) for slot in range(len(plan))]
        for future in futures:
            future.result()

    return cast(list[TranscriptionResult], results)
