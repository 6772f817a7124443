"""PCM to compressed audio conversion via ffmpeg."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List

from .config import AudioConfig
from .errors import ConversionFailed

logger = logging.getLogger("callscribe.converter")


def build_ffmpeg_command(input_path: str, output_path: str, audio: AudioConfig) -> List[str]:
    return [
        audio.ffmpeg_path,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-f",
        "s16le",
        "-ar",
        str(audio.sample_rate_hz),
        "-ac",
        str(audio.channels),
        "-i",
        input_path,
        "-ar",
        str(audio.output_rate_hz),
        "-ac",
        "1",
        "-b:a",
        audio.output_bitrate,
        output_path,
    ]


class FfmpegConverter:
    def __init__(self, audio: AudioConfig) -> None:
        self.audio = audio

    @property
    def suffix(self) -> str:
        return self.audio.output_format

    async def convert(self, input_path: str, output_path: str) -> str:
        if not os.path.exists(input_path):
            raise ConversionFailed(f"Input file {input_path} not found.")

        cmd = build_ffmpeg_command(input_path, output_path, self.audio)
        logger.debug("FFmpeg command: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ConversionFailed(f"Could not start {self.audio.ffmpeg_path}: {exc}") from exc

        try:
            _stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise ConversionFailed(
                f"ffmpeg exited with {proc.returncode}: {detail[-500:]}"
            )
        if not os.path.exists(output_path):
            raise ConversionFailed(f"ffmpeg produced no output at {output_path}.")

        logger.info("Converted %s to %s", input_path, output_path)
        return output_path
