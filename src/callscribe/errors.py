"""Error types."""

from __future__ import annotations


class CallscribeError(RuntimeError):
    pass


class NotInVoiceChannel(CallscribeError):
    pass


class AlreadyListening(CallscribeError):
    pass


class NotListening(CallscribeError):
    pass


class NoActiveConnection(CallscribeError):
    pass


class ConversionFailed(CallscribeError):
    pass


class ArtifactTooLarge(CallscribeError):
    def __init__(self, size_bytes: int, limit_bytes: int) -> None:
        super().__init__(
            f"Converted artifact is {size_bytes} bytes (limit {limit_bytes})."
        )
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class TranscriptionFailed(CallscribeError):
    pass


class SummarizationFailed(CallscribeError):
    pass


class DeliveryFailed(CallscribeError):
    pass
