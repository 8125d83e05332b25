from __future__ import annotations

import os
import sys
import types
from pathlib import Path

from splitscribe import openai_engine
from splitscribe.errors import EngineError


class FakeTranscriptions:
    def __init__(self, actions: list[object]):
        self.actions = actions
        self.calls: list[dict[str, object]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.actions:
            raise RuntimeError("no more actions configured")
        action = self.actions.pop(0)
        if isinstance(action, Exception):
            raise action
        return action


class FakeClient:
    def __init__(self, actions: list[object]):
        self.audio = types.SimpleNamespace(transcriptions=FakeTranscriptions(actions))


def _install_fake_openai(monkeypatch, client: FakeClient) -> None:
    class FakeOpenAIClass:
        def __init__(self, api_key: str):
            self.api_key = api_key
            self.audio = client.audio

    fake_module = types.SimpleNamespace(OpenAI=FakeOpenAIClass)
    monkeypatch.setitem(sys.modules, "openai", fake_module)


def _write_dummy_segment(tmp_path: Path) -> Path:
    segment_path = tmp_path / "segment_000_0.0-12.0.wav"
    segment_path.write_bytes(b"fake-audio")
    return segment_path


def test_openai_engine_sends_prompt_and_returns_trimmed_text(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    client = FakeClient(["  理大祭の話です。\n"])
    _install_fake_openai(monkeypatch, client)

    text = openai_engine.transcribe_segment_openai(
        _write_dummy_segment(tmp_path), language="ja", prompt="理大祭", max_retries=1
    )

    assert text == "理大祭の話です。"
    call = client.audio.transcriptions.calls[0]
    assert call["model"] == openai_engine.TEXT_MODEL
    assert call["response_format"] == "text"
    assert call["prompt"] == "理大祭"
    assert call["language"] == "ja"


def test_openai_engine_accepts_object_responses(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    client = FakeClient([types.SimpleNamespace(text="object text")])
    _install_fake_openai(monkeypatch, client)

    text = openai_engine.transcribe_segment_openai(
        _write_dummy_segment(tmp_path), language="ja", prompt="", max_retries=1
    )

    assert text == "object text"


def test_openai_engine_retries_timeout_and_then_succeeds(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(openai_engine.time, "sleep", lambda _seconds: None)
    client = FakeClient([RuntimeError("The request timed out."), "Test"])
    _install_fake_openai(monkeypatch, client)

    text = openai_engine.transcribe_segment_openai(
        _write_dummy_segment(tmp_path), language="ja", prompt="", max_retries=2
    )

    assert text == "Test"
    assert len(client.audio.transcriptions.calls) == 2


def test_openai_engine_raises_after_retry_exhaustion(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(openai_engine.time, "sleep", lambda _seconds: None)
    client = FakeClient([RuntimeError("The request timed out."), RuntimeError("The request timed out.")])
    _install_fake_openai(monkeypatch, client)

    try:
        openai_engine.transcribe_segment_openai(
            _write_dummy_segment(tmp_path), language="ja", prompt="", max_retries=2
        )
    except EngineError as exc:
        message = str(exc)
        assert "failed after 2 attempts" in message
        assert "timed out" in message.lower()
    else:
        raise AssertionError("Expected EngineError after retries")

    assert len(client.audio.transcriptions.calls) == 2
    assert os.environ["OPENAI_API_KEY"] == "test-key"


def test_openai_engine_fails_fast_on_missing_segment(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    client = FakeClient(["never used"])
    _install_fake_openai(monkeypatch, client)

    try:
        openai_engine.transcribe_segment_openai(tmp_path / "missing.wav", language="ja", prompt="", max_retries=3)
    except EngineError as exc:
        assert "missing" in str(exc)
    else:
        raise AssertionError("Expected EngineError for a missing segment file")

    assert client.audio.transcriptions.calls == []


def test_openai_engine_requires_api_key(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    _install_fake_openai(monkeypatch, FakeClient([]))

    try:
        openai_engine.transcribe_segment_openai(_write_dummy_segment(tmp_path), language="ja", prompt="")
    except EngineError as exc:
        assert "OPENAI_API_KEY" in str(exc)
    else:
        raise AssertionError("Expected EngineError without an API key")
