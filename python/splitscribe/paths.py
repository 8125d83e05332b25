from __future__ import annotations

import os
from pathlib import Path

RESULTS_STEM = "transcription_results"


def output_root() -> Path:
    configured = os.environ.get("SPLITSCRIBE_OUTPUT_ROOT", "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path("output")


def results_json_path(output_dir: Path) -> Path:
    return output_dir / f"{RESULTS_STEM}.json"


def results_txt_path(output_dir: Path) -> Path:
    return output_dir / f"{RESULTS_STEM}.txt"


def results_docx_path(output_dir: Path) -> Path:
    return output_dir / f"{RESULTS_STEM}.docx"
