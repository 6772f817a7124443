"""Configuration handling."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional
import yaml


MIB = 1024 * 1024

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes a conversation between "
    "multiple speakers."
)
DEFAULT_USER_PROMPT = (
    "Summarize the following text delimited by triple backticks:\n\n"
    "```{transcription}```"
)

OVERLAP_POLICIES = ("allow", "skip", "serialize")
MIN_MESSAGE_LIMIT = 64


@dataclass
class AudioConfig:
    sample_rate_hz: int = 48000
    channels: int = 1
    output_rate_hz: int = 16000
    output_format: str = "mp3"
    output_bitrate: str = "32k"
    ffmpeg_path: str = "ffmpeg"


@dataclass
class TranscriptionConfig:
    backend: str = "openai"
    model: str = "whisper-1"
    local_model: str = "small"
    language: Optional[str] = None


@dataclass
class SummarizationConfig:
    model: str = "gpt-4o"
    max_tokens: int = 4096
    temperature: float = 0.2
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt: str = DEFAULT_USER_PROMPT


@dataclass
class PipelineConfig:
    interval_minutes: float = 10.0
    max_artifact_bytes: int = 25 * MIB
    message_limit: int = 1900
    stage_timeout_seconds: float = 300.0
    overlap_policy: str = "allow"
    deliver_after_leave: bool = True
    notify_on_failure: bool = False

    def __post_init__(self) -> None:
        if self.overlap_policy not in OVERLAP_POLICIES:
            raise ValueError(
                f"overlap_policy must be one of {', '.join(OVERLAP_POLICIES)}."
            )
        if self.interval_minutes <= 0:
            raise ValueError("interval_minutes must be > 0.")
        if self.message_limit < MIN_MESSAGE_LIMIT:
            raise ValueError(f"message_limit must be >= {MIN_MESSAGE_LIMIT}.")

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60.0


@dataclass
class DiscordConfig:
    token: Optional[str] = None
    command_prefix: str = "!"


@dataclass
class Config:
    work_dir: str = "callscribe_work"
    log_dir: str = "logs"
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com"
    audio: AudioConfig = field(default_factory=AudioConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    summarization: SummarizationConfig = field(default_factory=SummarizationConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)

    def resolved_api_key(self) -> Optional[str]:
        return self.openai_api_key or os.environ.get("OPENAI_API_KEY")

    def resolved_discord_token(self) -> Optional[str]:
        return self.discord.token or os.environ.get("DISCORD_TOKEN")


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    audio = AudioConfig(**data.get("audio", {}))
    transcription = TranscriptionConfig(**data.get("transcription", {}))
    summarization = SummarizationConfig(**data.get("summarization", {}))
    pipeline = PipelineConfig(**data.get("pipeline", {}))
    discord = DiscordConfig(**data.get("discord", {}))

    return Config(
        work_dir=data.get("work_dir", "callscribe_work"),
        log_dir=data.get("log_dir", "logs"),
        openai_api_key=data.get("openai_api_key"),
        openai_base_url=data.get("openai_base_url", "https://api.openai.com"),
        audio=audio,
        transcription=transcription,
        summarization=summarization,
        pipeline=pipeline,
        discord=discord,
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "work_dir": config.work_dir,
        "log_dir": config.log_dir,
        "openai_api_key": config.openai_api_key,
        "openai_base_url": config.openai_base_url,
        "audio": {
            "sample_rate_hz": config.audio.sample_rate_hz,
            "channels": config.audio.channels,
            "output_rate_hz": config.audio.output_rate_hz,
            "output_format": config.audio.output_format,
            "output_bitrate": config.audio.output_bitrate,
            "ffmpeg_path": config.audio.ffmpeg_path,
        },
        "transcription": {
            "backend": config.transcription.backend,
            "model": config.transcription.model,
            "local_model": config.transcription.local_model,
            "language": config.transcription.language,
        },
        "summarization": {
            "model": config.summarization.model,
            "max_tokens": config.summarization.max_tokens,
            "temperature": config.summarization.temperature,
            "system_prompt": config.summarization.system_prompt,
            "user_prompt": config.summarization.user_prompt,
        },
        "pipeline": {
            "interval_minutes": config.pipeline.interval_minutes,
            "max_artifact_bytes": config.pipeline.max_artifact_bytes,
            "message_limit": config.pipeline.message_limit,
            "stage_timeout_seconds": config.pipeline.stage_timeout_seconds,
            "overlap_policy": config.pipeline.overlap_policy,
            "deliver_after_leave": config.pipeline.deliver_after_leave,
            "notify_on_failure": config.pipeline.notify_on_failure,
        },
        "discord": {
            "token": config.discord.token,
            "command_prefix": config.discord.command_prefix,
        },
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
