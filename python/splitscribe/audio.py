from __future__ import annotations

import logging
import math
import os
import subprocess
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Sequence

from .errors import MediaToolError
from .models import Segment

logger = logging.getLogger(__name__)

SILENCE_END_TOKEN = "silence_end:"


def run(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as exc:
        raise MediaToolError(f"{cmd[0]} not found; install ffmpeg or set FFMPEG_BIN/FFPROBE_BIN") from exc
    except subprocess.CalledProcessError as exc:
        raise MediaToolError(f"{Path(cmd[0]).name} exited with {exc.returncode}: {_tail(exc.stderr)}") from exc


def _tail(text: str | None, lines: int = 5) -> str:
    if not text:
        return ""
    return " | ".join(text.strip().splitlines()[-lines:])


def ffmpeg_bin() -> str:
    return os.environ.get("FFMPEG_BIN", "ffmpeg")


def ffprobe_bin() -> str:
    return os.environ.get("FFPROBE_BIN", "ffprobe")


def probe_duration_seconds(source: Path | str) -> float:
    cmd = [
        ffprobe_bin(),
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(source),
    ]
    completed = run(cmd)
    raw = completed.stdout.strip()
    try:
        duration = float(raw)
    except ValueError as exc:
        raise MediaToolError(f"Could not parse duration of {source}: {raw!r}") from exc
    if not math.isfinite(duration) or duration < 0:
        raise MediaToolError(f"Invalid duration for {source}: {raw!r}")
    return duration


def parse_silence_output(output: str) -> list[float]:
    points: list[float] = []
    for line in output.splitlines():
        if "silence_end" not in line:
            continue
        parts = line.split()
        for i, part in enumerate(parts):
            if part != SILENCE_END_TOKEN or i + 1 >= len(parts):
                continue
            try:
                value = float(parts[i + 1])
            except ValueError:
                logger.debug("Skipping unparsable silence_end token %r", parts[i + 1])
                continue
            if math.isfinite(value):
                points.append(value)
    return sorted(points)


def detect_silence(source: Path, *, noise_db: float, min_silence_sec: float) -> list[float]:
    cmd = [
        ffmpeg_bin(),
        "-hide_banner",
        "-nostats",
        "-i",
        str(source),
        "-af",
        f"silencedetect=noise={noise_db:g}dB:d={min_silence_sec:g}",
        "-f",
        "null",
        "-",
    ]
    # silencedetect reports on stderr.
    completed = run(cmd)
    points = parse_silence_output(completed.stderr)
    logger.info("Detected %d silence boundaries in %s", len(points), source.name)
    return points


def extract_segment(source: Path, segment: Segment) -> None:
    cmd = [
        ffmpeg_bin(),
        "-y",
        "-i",
        str(source),
        "-ss",
        f"{segment.start_sec:.3f}",
        "-t",
        f"{segment.duration_sec:.3f}",
        "-c",
        "copy",
        segment.path,
    ]
    run(cmd)


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial segment %s: %s", path, exc)


def extract_all(
    plan: Sequence[Segment],
    source: Path,
    output_dir: Path,
    *,
    concurrency: int,
    extract: Callable[[Path, Segment], None] = extract_segment,
) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)

    def _extract_one(segment: Segment) -> None:
        target = Path(segment.path)
        try:
            # A file left by an earlier run must never stand in for this run's output.
            target.unlink(missing_ok=True)
            extract(source, segment)
        except Exception as exc:  # noqa: BLE001 - one bad segment must not stop the rest
            logger.warning("Failed to extract segment %s: %s", segment.filename, exc)
            _discard(target)
        else:
            logger.debug("Extracted %s", segment.filename)

    with ThreadPoolExecutor(max_workers=max(1, concurrency), thread_name_prefix="extract") as executor:
        list(executor.map(_extract_one, plan))
