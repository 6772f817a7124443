"""Transcription backends."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import requests

from .config import Config
from .errors import TranscriptionFailed

logger = logging.getLogger("callscribe.transcriber")


class Transcriber(ABC):
    @abstractmethod
    def transcribe(self, audio_path: str) -> str:
        raise NotImplementedError


class OpenAITranscriber(Transcriber):
    """Whisper over the OpenAI audio transcription endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "whisper-1",
        base_url: str = "https://api.openai.com",
        language: Optional[str] = None,
        timeout: float = 300.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout = timeout

    def transcribe(self, audio_path: str) -> str:
        if not self._api_key:
            raise TranscriptionFailed("No OpenAI API key configured.")
        if not os.path.exists(audio_path):
            raise TranscriptionFailed(f"File {audio_path} not found.")

        data = {"model": self._model, "response_format": "text"}
        if self._language:
            data["language"] = self._language

        logger.info("Sending %s to %s", audio_path, self._model)
        try:
            with open(audio_path, "rb") as handle:
                response = requests.post(
                    f"{self._base_url}/v1/audio/transcriptions",
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    data=data,
                    files={"file": (os.path.basename(audio_path), handle)},
                    timeout=self._timeout,
                )
        except requests.RequestException as exc:
            raise TranscriptionFailed("Failed to reach OpenAI") from exc

        if response.status_code == 413:
            raise TranscriptionFailed("Audio file exceeds the service size limit.")
        if response.status_code != 200:
            raise TranscriptionFailed(
                f"OpenAI transcription error: {response.status_code} {response.text[:200]}"
            )
        return response.text.strip()


class LocalWhisperTranscriber(Transcriber):
    """Faster-Whisper running in-process."""

    def __init__(
        self,
        model_name: str = "small",
        language: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
    ) -> None:
        self.model_name = model_name
        self.language = language
        self.device = device
        self.compute_type = compute_type
        self._model = None

    def _load(self):
        if self._model is not None:
            return self._model
        try:
            from faster_whisper import WhisperModel
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "faster-whisper is required for local transcription."
            ) from exc

        kwargs = {}
        if self.device:
            kwargs["device"] = self.device
        if self.compute_type:
            kwargs["compute_type"] = self.compute_type
        self._model = WhisperModel(self.model_name, **kwargs)
        return self._model

    def transcribe(self, audio_path: str) -> str:
        try:
            model = self._load()
            segments, _info = model.transcribe(audio_path, language=self.language)
            return " ".join(seg.text.strip() for seg in segments).strip()
        except RuntimeError as exc:
            raise TranscriptionFailed(str(exc)) from exc


def build_transcriber(config: Config) -> Transcriber:
    settings = config.transcription
    if settings.backend == "local":
        return LocalWhisperTranscriber(
            model_name=settings.local_model, language=settings.language
        )
    if settings.backend == "openai":
        return OpenAITranscriber(
            api_key=config.resolved_api_key(),
            model=settings.model,
            base_url=config.openai_base_url,
            language=settings.language,
            timeout=config.pipeline.stage_timeout_seconds,
        )
    raise ValueError(f"Unknown transcription backend: {settings.backend}")
