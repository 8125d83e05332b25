from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Segment:
    idx: int
    start_sec: float
    end_sec: float
    path: str

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    @property
    def filename(self) -> str:
        return Path(self.path).name

    def to_dict(self) -> dict[str, Any]:
        return {
            "idx": self.idx,
            "startSec": self.start_sec,
            "endSec": self.end_sec,
            "durationSec": self.duration_sec,
            "filename": self.filename,
            "path": self.path,
        }


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    segment: Segment
    text: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def succeeded(cls, segment: Segment, text: str) -> TranscriptionResult:
        return cls(segment=segment, text=text)

    @classmethod
    def failed(cls, segment: Segment, error: str) -> TranscriptionResult:
        # An empty message would read as success in the report.
        return cls(segment=segment, text="", error=error or "unknown error")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "segment": self.segment.to_dict(),
            "text": self.text,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload
