from __future__ import annotations

import json
import subprocess
from pathlib import Path

import worker
from splitscribe import audio, pipeline
from splitscribe.errors import SetupError
from splitscribe.models import Segment


def _events(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.strip()]


def test_clean_command_removes_audio_under_root(monkeypatch, tmp_path: Path, capsys):
    monkeypatch.setattr(worker, "configure_logging", lambda verbose: None)
    (tmp_path / "a.mp3").write_bytes(b"x")
    (tmp_path / "b.txt").write_bytes(b"x")

    code = worker.main(["--json-events", "clean", "--root", str(tmp_path)])

    assert code == 0
    events = _events(capsys.readouterr().out)
    assert events[-1]["type"] == "result"
    assert [Path(p).name for p in events[-1]["payload"]["removed"]] == ["a.mp3"]
    assert (tmp_path / "b.txt").exists()


def test_clean_command_fails_for_missing_root(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(worker, "configure_logging", lambda verbose: None)

    assert worker.main(["clean", "--root", str(tmp_path / "missing")]) == 1


def test_run_command_reports_fatal_errors(monkeypatch, tmp_path: Path, capsys):
    monkeypatch.setattr(worker, "configure_logging", lambda verbose: None)

    def failing_pipeline(config, *, on_event=None):
        raise SetupError("Required tools not found on PATH: ffmpeg")

    monkeypatch.setattr(worker, "run_pipeline", failing_pipeline)

    code = worker.main(["--json-events", "run", "--source", str(tmp_path / "a.mp3")])

    assert code == 1
    events = _events(capsys.readouterr().out)
    assert events == [{"type": "error", "payload": {"message": "Required tools not found on PATH: ffmpeg"}}]


def test_plan_command_prints_segments(monkeypatch, tmp_path: Path, capsys):
    monkeypatch.setattr(worker, "configure_logging", lambda verbose: None)
    captured = {}

    def fake_build_plan(config):
        captured["config"] = config
        return 100.0, [
            Segment(idx=0, start_sec=0.0, end_sec=12.0, path=str(tmp_path / "segment_000_0.0-12.0.mp3")),
            Segment(idx=1, start_sec=12.0, end_sec=45.0, path=str(tmp_path / "segment_001_12.0-45.0.mp3")),
        ]

    monkeypatch.setattr(worker, "build_plan", fake_build_plan)

    code = worker.main(
        [
            "plan",
            "--source",
            str(tmp_path / "a.mp3"),
            "--output-dir",
            str(tmp_path),
            "--max-segment-sec",
            "40",
            "--concurrency",
            "3",
        ]
    )

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["durationSec"] == 100.0
    assert payload["covered"] == 45.0
    assert [seg["startSec"] for seg in payload["segments"]] == [0.0, 12.0]
    config = captured["config"]
    assert config.max_segment_sec == 40.0
    assert config.transcribe_concurrency == 3
    assert config.extract_concurrency == 3
    assert config.output_dir == tmp_path


def test_run_command_reports_output_dir_that_is_a_file(monkeypatch, tmp_path: Path, capsys):
    monkeypatch.setattr(worker, "configure_logging", lambda verbose: None)
    monkeypatch.setattr(pipeline, "require_tools", lambda config: None)
    source = tmp_path / "talk.mp3"
    source.write_bytes(b"mp3")
    blocker = tmp_path / "out"
    blocker.write_text("occupied", encoding="utf-8")

    def fake_run(cmd, **kwargs):
        if "-af" in cmd:
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="silence_end: 30 | silence_duration: 2")
        if "-ss" in cmd:
            raise AssertionError("Extraction must not start without an output directory")
        return subprocess.CompletedProcess(cmd, 0, stdout="60.0\n", stderr="")

    monkeypatch.setattr(audio.subprocess, "run", fake_run)

    code = worker.main(
        ["--json-events", "run", "--source", str(source), "--output-dir", str(blocker), "--engine", "openai"]
    )

    assert code == 1
    events = _events(capsys.readouterr().out)
    assert [event["type"] for event in events if event["type"] != "progress"] == ["error"]
    assert str(blocker) in events[-1]["payload"]["message"]
