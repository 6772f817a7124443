"""Interfaces to the call transport and the text channel."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

FrameCallback = Callable[[bytes], None]


class AudioStream(ABC):
    """Raw per-speaker audio stream. The subscriber owns it and must close it."""

    @abstractmethod
    def attach(self, callback: FrameCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def detach(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError


class AudioDecoder(ABC):
    @abstractmethod
    def decode(self, frame: bytes) -> bytes:
        """Return 16-bit little-endian mono PCM for one encoded frame."""
        raise NotImplementedError

    def close(self) -> None:
        return None


class VoiceTransport(ABC):
    @abstractmethod
    async def join(self, channel_ref: Any) -> Any:
        """Connect to the voice channel and return the connection handle.

        Raises NotInVoiceChannel when there is nothing to join.
        """
        raise NotImplementedError

    @abstractmethod
    async def leave(self, connection: Any) -> None:
        """Release the connection. Raises NoActiveConnection if it is gone."""
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, connection: Any, speaker_id: str) -> AudioStream:
        raise NotImplementedError

    @abstractmethod
    def create_decoder(self, speaker_id: str) -> AudioDecoder:
        raise NotImplementedError


class TextChannel(ABC):
    @abstractmethod
    async def send(self, text: str) -> None:
        raise NotImplementedError
