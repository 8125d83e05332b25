from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import SetupError
from .paths import output_root

ENGINES = ("whisper-cpp", "openai")

DEFAULT_PROMPT = """この音声は大学のサークル活動に関する会話です。
内容には「理科大（りかだい）」または「理大（りだい）」という大学名が登場します。
また、「理大祭（りだいさい）」というイベント名が含まれる場合があります。
会話は自然な日本語で行われており、学生同士のカジュアルなやり取りが含まれます。
固有名詞（大学名・イベント名など）は正確に認識してください。
日本語の音声の認識を行います"""


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise SetupError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SetupError(f"{name} must be an integer, got {raw!r}") from exc


def _load_prompt() -> str:
    prompt_file = os.environ.get("SPLITSCRIBE_PROMPT_FILE", "").strip()
    if not prompt_file:
        return DEFAULT_PROMPT
    try:
        return Path(prompt_file).expanduser().read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise SetupError(f"Could not read prompt file {prompt_file}: {exc}") from exc


@dataclass(slots=True)
class PipelineConfig:
    source: Path
    output_dir: Path = field(default_factory=output_root)
    noise_db: float = -30.0
    min_silence_sec: float = 5.0
    min_segment_sec: float = 10.0
    max_segment_sec: float = 60.0
    extract_concurrency: int = 1
    transcribe_concurrency: int = 1
    engine: str = "whisper-cpp"
    language: str = "ja"
    prompt: str = DEFAULT_PROMPT
    whisper_model: Path = Path("whisper.cpp/models/ggml-large-v3.bin")
    write_docx: bool = False

    @property
    def noise_threshold(self) -> str:
        return f"{self.noise_db:g}dB"

    @classmethod
    def from_env(cls, source: Path, **overrides: Any) -> PipelineConfig:
        config = cls(
            source=source,
            output_dir=output_root(),
            noise_db=_env_float("SPLITSCRIBE_NOISE_DB", -30.0),
            min_silence_sec=_env_float("SPLITSCRIBE_MIN_SILENCE_SEC", 5.0),
            min_segment_sec=_env_float("SPLITSCRIBE_MIN_SEGMENT_SEC", 10.0),
            max_segment_sec=_env_float("SPLITSCRIBE_MAX_SEGMENT_SEC", 60.0),
            extract_concurrency=_env_int("SPLITSCRIBE_EXTRACT_CONCURRENCY", 1),
            transcribe_concurrency=_env_int("SPLITSCRIBE_TRANSCRIBE_CONCURRENCY", 1),
            engine=_env_str("SPLITSCRIBE_ENGINE", "whisper-cpp"),
            language=_env_str("SPLITSCRIBE_LANGUAGE", "ja"),
            prompt=_load_prompt(),
            whisper_model=Path(_env_str("WHISPER_MODEL_PATH", "whisper.cpp/models/ggml-large-v3.bin")),
        )
        # CLI flags left unset arrive as None and must not clobber env values.
        explicit = {key: value for key, value in overrides.items() if value is not None}
        return replace(config, **explicit)

    def validate(self) -> None:
        if self.extract_concurrency < 1 or self.transcribe_concurrency < 1:
            raise SetupError("Concurrency must be at least 1")
        if self.min_segment_sec <= 0:
            raise SetupError("min_segment_sec must be positive")
        if self.max_segment_sec <= 0:
            raise SetupError("max_segment_sec must be positive")
        if self.min_silence_sec <= 0:
            raise SetupError("min_silence_sec must be positive")
        if self.engine not in ENGINES:
            raise SetupError(f"Unknown engine {self.engine!r}; choose one of {', '.join(ENGINES)}")
