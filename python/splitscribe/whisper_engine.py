from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from .errors import EngineError

logger = logging.getLogger(__name__)

OUTPUT_FLAGS = ("-otxt", "-nt", "--suppress-nst")


def whisper_cli_bin() -> str:
    return os.environ.get("WHISPER_CLI_BIN", "whisper-cli")


def build_command(
    segment_path: Path | str,
    *,
    measured_sec: float,
    model_path: Path | str,
    language: str,
    prompt: str,
) -> list[str]:
    min_speech_ms = f"{max(0.0, measured_sec) * 1000:.0f}"
    return [
        whisper_cli_bin(),
        "-m",
        str(model_path),
        "-f",
        str(segment_path),
        "-l",
        language,
        "--vad-min-speech-duration-ms",
        min_speech_ms,
        *OUTPUT_FLAGS,
        "--prompt",
        prompt,
    ]


def transcribe_segment_whisper(
    segment_path: Path | str,
    *,
    measured_sec: float,
    model_path: Path | str,
    language: str,
    prompt: str,
) -> str:
    cmd = build_command(
        segment_path,
        measured_sec=measured_sec,
        model_path=model_path,
        language=language,
        prompt=prompt,
    )
    logger.debug("Transcribing %s (%.2fs)", segment_path, measured_sec)
    try:
        completed = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as exc:
        raise EngineError(f"{cmd[0]} not found; set WHISPER_CLI_BIN") from exc

    if completed.returncode != 0:
        detail = (completed.stderr or completed.stdout or "").strip()
        raise EngineError(f"whisper-cli exited with {completed.returncode}: {detail}")
    return completed.stdout.strip()
