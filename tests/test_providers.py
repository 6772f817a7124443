import pytest
import requests

from callscribe.config import Config, SummarizationConfig
from callscribe.errors import SummarizationFailed, TranscriptionFailed
from callscribe.summarizer import Summarizer, build_messages
from callscribe.transcriber import LocalWhisperTranscriber, OpenAITranscriber, build_transcriber


class _Response:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


def test_build_messages_fills_template():
    messages = build_messages("we agreed {on} things", SummarizationConfig())
    assert messages[0]["role"] == "system"
    assert "```we agreed {on} things```" in messages[1]["content"]


def test_summarizer_returns_completion(monkeypatch):
    captured = {}

    def _post(url, **kwargs):
        captured["url"] = url
        captured["json"] = kwargs["json"]
        return _Response(payload={"choices": [{"message": {"content": " Summary. "}}]})

    monkeypatch.setattr(requests, "post", _post)
    summarizer = Summarizer("sk-test", SummarizationConfig())

    assert summarizer.summarize("transcript") == "Summary."
    assert captured["url"].endswith("/v1/chat/completions")
    assert captured["json"]["model"] == "gpt-4o"
    assert captured["json"]["max_tokens"] == 4096


def test_summarizer_empty_completion_fails(monkeypatch):
    monkeypatch.setattr(
        requests,
        "post",
        lambda url, **kw: _Response(payload={"choices": [{"message": {"content": ""}}]}),
    )
    with pytest.raises(SummarizationFailed):
        Summarizer("sk-test", SummarizationConfig()).summarize("transcript")


def test_summarizer_network_error(monkeypatch):
    def _post(url, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(requests, "post", _post)
    with pytest.raises(SummarizationFailed):
        Summarizer("sk-test", SummarizationConfig()).summarize("transcript")


def test_openai_transcriber_posts_file(monkeypatch, tmp_path):
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"mp3")
    captured = {}

    def _post(url, **kwargs):
        captured["url"] = url
        captured["data"] = kwargs["data"]
        return _Response(text="hello there\n")

    monkeypatch.setattr(requests, "post", _post)
    transcriber = OpenAITranscriber("sk-test")

    assert transcriber.transcribe(str(audio)) == "hello there"
    assert captured["url"].endswith("/v1/audio/transcriptions")
    assert captured["data"] == {"model": "whisper-1", "response_format": "text"}


def test_openai_transcriber_errors(monkeypatch, tmp_path):
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"mp3")
    monkeypatch.setattr(requests, "post", lambda url, **kw: _Response(status_code=500))

    with pytest.raises(TranscriptionFailed):
        OpenAITranscriber("sk-test").transcribe(str(audio))
    with pytest.raises(TranscriptionFailed):
        OpenAITranscriber(None).transcribe(str(audio))
    with pytest.raises(TranscriptionFailed):
        OpenAITranscriber("sk-test").transcribe(str(tmp_path / "missing.mp3"))


def test_build_transcriber_selects_backend():
    cfg = Config()
    assert isinstance(build_transcriber(cfg), OpenAITranscriber)
    cfg.transcription.backend = "local"
    assert isinstance(build_transcriber(cfg), LocalWhisperTranscriber)
    cfg.transcription.backend = "other"
    with pytest.raises(ValueError):
        build_transcriber(cfg)
