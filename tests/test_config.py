import os
import tempfile

import pytest

from callscribe.config import MIB, Config, PipelineConfig, load_config, save_config


def test_save_and_load_config_roundtrip():
    cfg = Config(work_dir="/srv/callscribe")
    cfg.pipeline.interval_minutes = 5
    cfg.pipeline.overlap_policy = "skip"
    cfg.summarization.model = "gpt-4o-mini"

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "callscribe_config.yml")
        save_config(path, cfg)
        loaded = load_config(path)

    assert loaded.work_dir == "/srv/callscribe"
    assert loaded.pipeline.interval_seconds == 300
    assert loaded.pipeline.overlap_policy == "skip"
    assert loaded.summarization.model == "gpt-4o-mini"
    assert "{transcription}" in loaded.summarization.user_prompt


def test_defaults_match_reference_deployment():
    cfg = Config()
    assert cfg.pipeline.interval_minutes == 10
    assert cfg.pipeline.max_artifact_bytes == 25 * MIB
    assert cfg.pipeline.message_limit == 1900
    assert cfg.transcription.model == "whisper-1"
    assert cfg.summarization.model == "gpt-4o"


def test_unknown_overlap_policy_is_rejected(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("pipeline:\n  overlap_policy: sometimes\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_api_key_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert Config().resolved_api_key() == "sk-env"
    assert Config(openai_api_key="sk-file").resolved_api_key() == "sk-file"


def test_pipeline_config_validates_on_construction():
    with pytest.raises(ValueError):
        PipelineConfig(overlap_policy="serialise")
    with pytest.raises(ValueError):
        PipelineConfig(interval_minutes=0)
    with pytest.raises(ValueError):
        PipelineConfig(message_limit=10)
    assert PipelineConfig(overlap_policy="serialize").overlap_policy == "serialize"
