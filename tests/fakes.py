import asyncio
import os

from callscribe.config import AudioConfig
from callscribe.errors import (
    ConversionFailed,
    NoActiveConnection,
    NotInVoiceChannel,
    SummarizationFailed,
    TranscriptionFailed,
)
from callscribe.transport import AudioDecoder, AudioStream, TextChannel, VoiceTransport


class FakeStream(AudioStream):
    def __init__(self, speaker_id):
        self.speaker_id = speaker_id
        self.callback = None
        self.detached = 0
        self.closed = 0

    def attach(self, callback):
        self.callback = callback

    def detach(self):
        self.detached += 1
        self.callback = None

    def close(self):
        self.closed += 1

    def emit(self, frame):
        if self.callback is not None:
            self.callback(frame)


class FakeDecoder(AudioDecoder):
    def __init__(self):
        self.closed = 0

    def decode(self, frame):
        if frame == b"bad":
            raise ValueError("corrupt frame")
        return frame

    def close(self):
        self.closed += 1


class FakeConnection:
    def __init__(self, channel_ref):
        self.channel_ref = channel_ref
        self.connected = True


class FakeTransport(VoiceTransport):
    def __init__(self, fail_subscribe=False):
        self.connections = []
        self.streams = []
        self.decoders = []
        self.left = []
        self.fail_subscribe = fail_subscribe

    async def join(self, channel_ref):
        if channel_ref is None:
            raise NotInVoiceChannel("not in a voice channel")
        connection = FakeConnection(channel_ref)
        self.connections.append(connection)
        return connection

    async def leave(self, connection):
        if connection is None or not connection.connected:
            raise NoActiveConnection("gone")
        connection.connected = False
        self.left.append(connection)

    def subscribe(self, connection, speaker_id):
        if self.fail_subscribe:
            raise RuntimeError("transport refused")
        stream = FakeStream(speaker_id)
        self.streams.append(stream)
        return stream

    def create_decoder(self, speaker_id):
        decoder = FakeDecoder()
        self.decoders.append(decoder)
        return decoder

    def stream_for(self, speaker_id):
        return [s for s in self.streams if s.speaker_id == speaker_id][-1]


class FakeConverter:
    def __init__(self, output_size=1024, fail=False, delay=0.0):
        self.audio = AudioConfig()
        self.output_size = output_size
        self.fail = fail
        self.delay = delay
        self.calls = []
        self.inputs = []

    @property
    def suffix(self):
        return "mp3"

    async def convert(self, input_path, output_path):
        self.calls.append((input_path, output_path))
        with open(input_path, "rb") as handle:
            self.inputs.append(handle.read())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConversionFailed("ffmpeg exited with 1")
        with open(output_path, "wb") as handle:
            handle.write(b"\0" * self.output_size)
        return output_path


class FakeTranscriber:
    def __init__(self, text="hello from the call", fail=False):
        self.text = text
        self.fail = fail
        self.calls = []

    def transcribe(self, audio_path):
        self.calls.append((audio_path, os.path.exists(audio_path)))
        if self.fail:
            raise TranscriptionFailed("Failed to reach OpenAI")
        return self.text


class FakeSummarizer:
    def __init__(self, summary="A short summary.", fail=False):
        self.summary = summary
        self.fail = fail
        self.calls = []

    def summarize(self, transcript):
        self.calls.append(transcript)
        if self.fail:
            raise SummarizationFailed("OpenAI returned an empty completion")
        return self.summary


class FakeChannel(TextChannel):
    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    async def send(self, text):
        if self.fail:
            raise RuntimeError("channel unavailable")
        self.messages.append(text)
