from __future__ import annotations


class PipelineError(RuntimeError):
    pass


class SetupError(PipelineError):
    """Raised before any segment is processed; aborts the whole run."""


class MediaToolError(PipelineError):
    """ffmpeg/ffprobe could not be invoked or produced unusable output."""


class EngineError(PipelineError):
    """A transcription engine call failed for one segment."""
