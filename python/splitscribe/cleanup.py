from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = (".mp3", ".wav", ".m4a", ".flac", ".aac")


def _raise(exc: OSError) -> None:
    raise exc


def clean_audio_files(root: Path, extensions: Iterable[str] = AUDIO_EXTENSIONS) -> list[Path]:
    """Delete every file under ``root`` whose extension is in ``extensions``.

    Matching ignores case. A file that cannot be removed is logged and skipped;
    a directory that cannot be listed aborts the walk with the underlying OSError.
    """
    wanted = tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions)
    removed: list[Path] = []

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for name in filenames:
            if not name.lower().endswith(wanted):
                continue
            path = Path(dirpath) / name
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not remove %s: %s", path, exc)
                continue
            logger.info("Removed %s", path)
            removed.append(path)

    return removed
