import pytest

from callscribe.config import AudioConfig
from callscribe.converter import FfmpegConverter, build_ffmpeg_command
from callscribe.errors import ConversionFailed


def test_ffmpeg_command_reads_mono_pcm_and_writes_16k():
    cmd = build_ffmpeg_command("in.pcm", "out.mp3", AudioConfig())
    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-f") + 1] == "s16le"
    assert cmd[cmd.index("-i") - 3] == "48000"
    assert cmd[cmd.index("-i") + 3] == "16000"
    assert cmd[-1] == "out.mp3"


@pytest.mark.asyncio
async def test_missing_input_fails(tmp_path):
    converter = FfmpegConverter(AudioConfig())
    with pytest.raises(ConversionFailed):
        await converter.convert(str(tmp_path / "none.pcm"), str(tmp_path / "out.mp3"))


@pytest.mark.asyncio
async def test_missing_binary_fails(tmp_path):
    pcm = tmp_path / "in.pcm"
    pcm.write_bytes(b"\0\0" * 100)
    converter = FfmpegConverter(AudioConfig(ffmpeg_path=str(tmp_path / "no-ffmpeg")))
    with pytest.raises(ConversionFailed):
        await converter.convert(str(pcm), str(tmp_path / "out.mp3"))
