from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable

from . import audio
from .assembler import AssembledTranscript, assemble
from .config import PipelineConfig
from .dispatcher import TranscribeFn, transcribe_all
from .errors import PipelineError, SetupError
from .exporters import export_docx, export_json, export_txt
from .models import Segment
from .openai_engine import transcribe_segment_openai
from .paths import results_docx_path, results_json_path, results_txt_path
from .planner import plan_segments
from .whisper_engine import transcribe_segment_whisper, whisper_cli_bin

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, object], None]


@dataclass(slots=True)
class RunOutcome:
    duration_sec: float
    plan: list[Segment]
    transcript: AssembledTranscript
    written: dict[str, Path] = field(default_factory=dict)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.transcript.ordered if not result.ok)


def _noop(_event_type: str, _payload: object) -> None:
    return None


def require_tools(config: PipelineConfig) -> None:
    missing = [name for name in (audio.ffmpeg_bin(), audio.ffprobe_bin()) if shutil.which(name) is None]
    if config.engine == "whisper-cpp":
        if shutil.which(whisper_cli_bin()) is None:
            missing.append(whisper_cli_bin())
        if not config.whisper_model.is_file():
            raise SetupError(f"Whisper model not found: {config.whisper_model}")
    if missing:
        raise SetupError(f"Required tools not found on PATH: {', '.join(missing)}")


def build_engine(config: PipelineConfig) -> TranscribeFn:
    if config.engine == "openai":

        def _openai(path: str, _measured_sec: float) -> str:
            return transcribe_segment_openai(path, language=config.language, prompt=config.prompt)

        return _openai

    whisper = partial(
        transcribe_segment_whisper,
        model_path=config.whisper_model,
        language=config.language,
        prompt=config.prompt,
    )

    def _whisper(path: str, measured_sec: float) -> str:
        return whisper(path, measured_sec=measured_sec)

    return _whisper


def build_plan(config: PipelineConfig) -> tuple[float, list[Segment]]:
    source = config.source
    if not source.is_file():
        raise SetupError(f"Input file does not exist: {source}")

    duration = audio.probe_duration_seconds(source)
    points = audio.detect_silence(source, noise_db=config.noise_db, min_silence_sec=config.min_silence_sec)
    plan = plan_segments(
        points,
        duration,
        min_segment_sec=config.min_segment_sec,
        max_segment_sec=config.max_segment_sec,
        output_dir=config.output_dir,
        suffix=source.suffix or ".wav",
    )
    logger.info("Planned %d segments over %.1fs of audio", len(plan), duration)
    return duration, plan


def prepare_output_dir(output_dir: Path) -> None:
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SetupError(f"Cannot create output directory {output_dir}: {exc}") from exc


def write_outputs(config: PipelineConfig, transcript: AssembledTranscript, duration_sec: float) -> dict[str, Path]:
    written = {
        "json": results_json_path(config.output_dir),
        "txt": results_txt_path(config.output_dir),
    }
    try:
        export_json(transcript.json_report, written["json"])
        export_txt(transcript.text_report, written["txt"])
        if config.write_docx:
            written["docx"] = results_docx_path(config.output_dir)
            export_docx(
                transcript.ordered,
                written["docx"],
                source_name=config.source.name,
                duration_sec=duration_sec,
            )
    except OSError as exc:
        raise PipelineError(f"Failed to write results to {config.output_dir}: {exc}") from exc
    return written


def run_pipeline(
    config: PipelineConfig,
    *,
    on_event: EventCallback | None = None,
    engine: TranscribeFn | None = None,
    check_tools: bool = True,
) -> RunOutcome:
    emit = on_event or _noop
    config.validate()
    if check_tools:
        require_tools(config)

    started = time.monotonic()
    emit("progress", {"stage": "plan", "message": "Detecting silence and planning segments"})
    duration, plan = build_plan(config)
    prepare_output_dir(config.output_dir)

    emit("progress", {"stage": "extract", "segmentsTotal": len(plan), "message": f"Extracting {len(plan)} segments"})
    audio.extract_all(plan, config.source, config.output_dir, concurrency=config.extract_concurrency)

    def _on_state(segment: Segment, state: str) -> None:
        emit("segment", {"idx": segment.idx, "filename": segment.filename, "state": state})

    emit("progress", {"stage": "transcribe", "segmentsTotal": len(plan), "message": "Transcribing segments"})
    results = transcribe_all(
        plan,
        engine or build_engine(config),
        concurrency=config.transcribe_concurrency,
        probe=audio.probe_duration_seconds,
        on_state=_on_state,
    )

    transcript = assemble(results)
    written = write_outputs(config, transcript, duration)
    outcome = RunOutcome(duration_sec=duration, plan=plan, transcript=transcript, written=written)

    logger.info(
        "Transcribed %d segments (%d failed) in %.1fs",
        len(plan),
        outcome.failed_count,
        time.monotonic() - started,
    )
    return outcome
