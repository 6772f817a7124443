"""Transcript summarization through an OpenAI-compatible chat API."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import Config, SummarizationConfig
from .errors import SummarizationFailed

logger = logging.getLogger("callscribe.summarizer")


def build_messages(transcript: str, settings: SummarizationConfig) -> list[dict]:
    # Transcripts may contain braces.
    user_prompt = settings.user_prompt.replace("{transcription}", transcript)
    return [
        {"role": "system", "content": settings.system_prompt},
        {"role": "user", "content": user_prompt},
    ]


class Summarizer:
    def __init__(
        self,
        api_key: Optional[str],
        settings: SummarizationConfig,
        base_url: str = "https://api.openai.com",
        timeout: float = 120.0,
    ) -> None:
        self._api_key = api_key
        self._settings = settings
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def summarize(self, transcript: str) -> str:
        if not self._api_key:
            raise SummarizationFailed("No OpenAI API key configured.")

        request_body = {
            "model": self._settings.model,
            "messages": build_messages(transcript, self._settings),
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
        }
        logger.info("Summarizing %d characters with %s", len(transcript), self._settings.model)
        try:
            response = requests.post(
                f"{self._base_url}/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise SummarizationFailed("Failed to reach OpenAI") from exc

        if response.status_code != 200:
            raise SummarizationFailed(f"OpenAI error: {response.status_code}")

        data = response.json()
        choices = data.get("choices", [])
        if not choices:
            raise SummarizationFailed("OpenAI response missing choices")

        content = str(choices[0].get("message", {}).get("content") or "").strip()
        if not content:
            raise SummarizationFailed("OpenAI returned an empty completion")
        return content


def build_summarizer(config: Config) -> Summarizer:
    return Summarizer(
        api_key=config.resolved_api_key(),
        settings=config.summarization,
        base_url=config.openai_base_url,
        timeout=config.pipeline.stage_timeout_seconds,
    )
