#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure local package is importable when running from a source checkout.
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from splitscribe.cleanup import AUDIO_EXTENSIONS, clean_audio_files
from splitscribe.config import ENGINES, PipelineConfig
from splitscribe.errors import PipelineError
from splitscribe.exporters import echo_report
from splitscribe.paths import output_root
from splitscribe.pipeline import build_plan, run_pipeline

logger = logging.getLogger("splitscribe.worker")


def emit(event_type: str, payload: object) -> None:
    print(json.dumps({"type": event_type, "payload": payload}, ensure_ascii=False), flush=True)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%H:%M:%S"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig.from_env(
        Path(args.source).expanduser().resolve(),
        output_dir=Path(args.output_dir).expanduser() if args.output_dir else None,
        noise_db=args.noise_db,
        min_silence_sec=args.min_silence_sec,
        min_segment_sec=args.min_segment_sec,
        max_segment_sec=args.max_segment_sec,
        extract_concurrency=args.extract_concurrency or args.concurrency,
        transcribe_concurrency=args.concurrency,
        engine=args.engine,
        language=args.language,
        whisper_model=Path(args.model).expanduser() if args.model else None,
        write_docx=True if args.docx else None,
    )


def _log_event(event_type: str, payload: object) -> None:
    if isinstance(payload, dict) and "message" in payload:
        logger.info("%s", payload["message"])
    elif event_type == "segment" and isinstance(payload, dict):
        logger.debug("Segment %s: %s", payload.get("filename"), payload.get("state"))


def command_run(args: argparse.Namespace) -> int:
    on_event = emit if args.json_events else _log_event
    try:
        config = config_from_args(args)
        outcome = run_pipeline(config, on_event=on_event)
    except (PipelineError, OSError) as exc:
        logger.error("Audio analysis failed: %s", exc)
        if args.json_events:
            emit("error", {"message": str(exc)})
        return 1

    if args.json_events:
        emit(
            "result",
            {
                "sourcePath": str(config.source),
                "durationSec": outcome.duration_sec,
                "segmentsTotal": len(outcome.plan),
                "segmentsFailed": outcome.failed_count,
                "files": {kind: str(path) for kind, path in outcome.written.items()},
                "results": [result.to_dict() for result in outcome.transcript.ordered],
            },
        )
    else:
        echo_report(outcome.transcript.ordered)
    return 0


def command_plan(args: argparse.Namespace) -> int:
    try:
        config = config_from_args(args)
        config.validate()
        duration, plan = build_plan(config)
    except (PipelineError, OSError) as exc:
        logger.error("Planning failed: %s", exc)
        if args.json_events:
            emit("error", {"message": str(exc)})
        return 1

    payload = {
        "sourcePath": str(config.source),
        "durationSec": duration,
        "covered": sum(segment.duration_sec for segment in plan),
        "segments": [segment.to_dict() for segment in plan],
    }
    if args.json_events:
        emit("result", payload)
    else:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def command_clean(args: argparse.Namespace) -> int:
    root = Path(args.root).expanduser() if args.root else output_root()
    extensions = args.extensions or AUDIO_EXTENSIONS
    try:
        removed = clean_audio_files(root, extensions)
    except OSError as exc:
        logger.error("Cleanup failed: %s", exc)
        if args.json_events:
            emit("error", {"message": str(exc)})
        return 1

    if args.json_events:
        emit("result", {"removed": [str(path) for path in removed]})
    else:
        logger.info("Removed %d audio files under %s", len(removed), root)
    return 0


def _add_pipeline_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", required=True, help="Audio file to transcribe")
    parser.add_argument("--output-dir", help="Where segments and results are written")
    parser.add_argument("--noise-db", type=float, help="Silence threshold in dB, e.g. -30")
    parser.add_argument("--min-silence-sec", type=float)
    parser.add_argument("--min-segment-sec", type=float)
    parser.add_argument("--max-segment-sec", type=float)
    parser.add_argument("--concurrency", type=int, help="Parallel transcription workers")
    parser.add_argument("--extract-concurrency", type=int, help="Parallel extraction workers (defaults to --concurrency)")
    parser.add_argument("--engine", choices=ENGINES)
    parser.add_argument("--language")
    parser.add_argument("--model", help="whisper.cpp model file")
    parser.add_argument("--docx", action="store_true", help="Also write a .docx report")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Silence-split audio transcription worker")
    parser.add_argument("--json-events", action="store_true", help="Emit JSON lines instead of plain text")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Split, extract, transcribe and assemble")
    _add_pipeline_arguments(run_parser)
    run_parser.set_defaults(func=command_run)

    plan_parser = sub.add_parser("plan", help="Print the segment plan without extracting")
    _add_pipeline_arguments(plan_parser)
    plan_parser.set_defaults(func=command_plan)

    clean_parser = sub.add_parser("clean", help="Delete audio files under the output root")
    clean_parser.add_argument("--root")
    clean_parser.add_argument("--extensions", nargs="+")
    clean_parser.set_defaults(func=command_clean)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
