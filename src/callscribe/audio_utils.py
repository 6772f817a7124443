"""Audio helpers."""

from __future__ import annotations

import numpy as np


def downmix_to_mono(pcm: bytes, channels: int) -> bytes:
    """Average interleaved 16-bit PCM channels into a single channel."""
    if channels <= 1:
        return pcm
    data = np.frombuffer(pcm, dtype=np.int16)
    usable = (data.size // channels) * channels
    if usable == 0:
        return b""
    frames = data[:usable].reshape(-1, channels).astype(np.int32)
    mono = frames.mean(axis=1).astype(np.int16)
    return mono.tobytes()


def pcm_duration_seconds(
    pcm_bytes: int,
    sample_rate_hz: int = 48000,
    channels: int = 1,
    sample_width: int = 2,
) -> float:
    frame_size = channels * sample_width
    if sample_rate_hz <= 0 or frame_size <= 0:
        raise ValueError("sample_rate_hz and channels must be > 0.")
    return pcm_bytes / float(sample_rate_hz * frame_size)
