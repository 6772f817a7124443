import numpy as np
import pytest

from callscribe.audio_utils import downmix_to_mono, pcm_duration_seconds


def test_downmix_averages_channels():
    stereo = np.array([100, 300, -200, -400], dtype=np.int16).tobytes()
    mono = np.frombuffer(downmix_to_mono(stereo, 2), dtype=np.int16)
    assert mono.tolist() == [200, -300]


def test_downmix_mono_is_passthrough():
    data = b"\x01\x00\x02\x00"
    assert downmix_to_mono(data, 1) == data


def test_pcm_duration():
    assert pcm_duration_seconds(96000) == 1.0
    with pytest.raises(ValueError):
        pcm_duration_seconds(10, sample_rate_hz=0)
