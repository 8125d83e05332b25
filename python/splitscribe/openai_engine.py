from __future__ import annotations

import os
import random
import time
from pathlib import Path

from .errors import EngineError

TEXT_MODEL = "whisper-1"
REQUEST_TIMEOUT_SEC = float(os.environ.get("OPENAI_REQUEST_TIMEOUT_SEC", "600"))


def _response_text(response: object) -> str:
    # response_format="text" yields a bare string; older clients wrap it.
    if isinstance(response, str):
        return response
    text = getattr(response, "text", None)
    if text is None and isinstance(response, dict):
        text = response.get("text")
    return str(text or "")


def transcribe_segment_openai(
    segment_path: Path | str,
    *,
    language: str,
    prompt: str,
    max_retries: int = 5,
) -> str:
    try:
        from openai import OpenAI
    except ImportError as exc:  # pragma: no cover - env dependent
        raise EngineError("The openai package is not installed") from exc

    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise EngineError("OPENAI_API_KEY is not set")

    client = OpenAI(api_key=api_key)
    path = Path(segment_path)
    backoff = 1.0
    last_error: Exception | None = None

    for attempt in range(1, max_retries + 1):
        try:
            with path.open("rb") as audio_file:
                response = client.audio.transcriptions.create(
                    model=TEXT_MODEL,
                    file=audio_file,
                    language=language,
                    prompt=prompt,
                    response_format="text",
                    timeout=REQUEST_TIMEOUT_SEC,
                )
            return _response_text(response).strip()
        except FileNotFoundError as exc:
            raise EngineError(f"Segment file is missing: {path}") from exc
        except Exception as exc:  # noqa: BLE001 - retry on provider errors
            last_error = exc
            if attempt >= max_retries:
                break
            jitter = random.uniform(0.05, 0.4)
            time.sleep(backoff + jitter)
            backoff = min(backoff * 2, 12.0)

    raise EngineError(f"OpenAI transcription failed after {max_retries} attempts: {last_error}")
