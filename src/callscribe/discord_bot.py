"""Discord adapter: voice receive transport and text commands."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import discord
from discord.ext import commands, voice_recv

from .audio_utils import downmix_to_mono
from .config import Config
from .errors import AlreadyListening, NoActiveConnection, NotInVoiceChannel, NotListening
from .session import SessionManager
from .transport import AudioDecoder, AudioStream, FrameCallback, TextChannel, VoiceTransport

logger = logging.getLogger("callscribe.discord")

SpeakingHandler = Callable[[str, str, bool], None]

DISCORD_CHANNELS = 2


class RoutingSink(voice_recv.AudioSink):
    """Single sink per voice connection that fans opus packets out per user."""

    def __init__(self, context_id: str, on_speaking: SpeakingHandler) -> None:
        super().__init__()
        self.context_id = context_id
        self._on_speaking = on_speaking
        self._lock = threading.Lock()
        self._routes: Dict[str, "DiscordAudioStream"] = {}

    def wants_opus(self) -> bool:
        return True

    def write(self, user, data) -> None:
        if user is None or data.opus is None:
            return
        with self._lock:
            stream = self._routes.get(str(user.id))
        if stream is not None:
            stream.feed(data.opus)

    def cleanup(self) -> None:
        with self._lock:
            self._routes.clear()

    def register(self, stream: "DiscordAudioStream") -> None:
        with self._lock:
            self._routes[stream.speaker_id] = stream

    def unregister(self, stream: "DiscordAudioStream") -> None:
        with self._lock:
            if self._routes.get(stream.speaker_id) is stream:
                del self._routes[stream.speaker_id]

    @voice_recv.AudioSink.listener()
    def on_voice_member_speaking_start(self, member) -> None:
        self._on_speaking(self.context_id, str(member.id), True)

    @voice_recv.AudioSink.listener()
    def on_voice_member_speaking_stop(self, member) -> None:
        self._on_speaking(self.context_id, str(member.id), False)


class DiscordAudioStream(AudioStream):
    def __init__(self, sink: RoutingSink, speaker_id: str) -> None:
        self.sink = sink
        self.speaker_id = speaker_id
        self._callback: Optional[FrameCallback] = None
        sink.register(self)

    def feed(self, frame: bytes) -> None:
        callback = self._callback
        if callback is not None:
            callback(frame)

    def attach(self, callback: FrameCallback) -> None:
        self._callback = callback

    def detach(self) -> None:
        self._callback = None

    def close(self) -> None:
        self._callback = None
        self.sink.unregister(self)


class DiscordOpusDecoder(AudioDecoder):
    """Opus to 48 kHz mono PCM."""

    def __init__(self) -> None:
        self._decoder = discord.opus.Decoder()

    def decode(self, frame: bytes) -> bytes:
        stereo = self._decoder.decode(frame, fec=False)
        return downmix_to_mono(stereo, DISCORD_CHANNELS)

    def close(self) -> None:
        self._decoder = None


@dataclass
class DiscordConnection:
    voice_client: Any
    sink: RoutingSink


class DiscordVoiceTransport(VoiceTransport):
    def __init__(self, on_speaking: SpeakingHandler) -> None:
        self._on_speaking = on_speaking

    async def join(self, channel_ref: Any) -> DiscordConnection:
        if channel_ref is None:
            raise NotInVoiceChannel("You need to be in a voice channel to use this command.")
        voice_client = await channel_ref.connect(cls=voice_recv.VoiceRecvClient)
        sink = RoutingSink(str(channel_ref.guild.id), self._on_speaking)
        voice_client.listen(sink)
        logger.info("Joined voice channel %s", channel_ref.name)
        return DiscordConnection(voice_client=voice_client, sink=sink)

    async def leave(self, connection: Optional[DiscordConnection]) -> None:
        if connection is None or not connection.voice_client.is_connected():
            raise NoActiveConnection("No active voice connection.")
        if connection.voice_client.is_listening():
            connection.voice_client.stop_listening()
        await connection.voice_client.disconnect()

    def subscribe(self, connection: DiscordConnection, speaker_id: str) -> DiscordAudioStream:
        return DiscordAudioStream(connection.sink, speaker_id)

    def create_decoder(self, speaker_id: str) -> DiscordOpusDecoder:
        return DiscordOpusDecoder()


class DiscordTextChannel(TextChannel):
    def __init__(self, channel) -> None:
        self.channel = channel

    async def send(self, text: str) -> None:
        await self.channel.send(text)


def build_bot(config: Config) -> commands.Bot:
    intents = discord.Intents.default()
    intents.message_content = True
    intents.voice_states = True
    bot = commands.Bot(command_prefix=config.discord.command_prefix, intents=intents)

    def _on_speaking(context_id: str, speaker_id: str, started: bool) -> None:
        controller = manager.find(context_id)
        if controller is None:
            return
        handler = controller.on_speaking_start if started else controller.on_speaking_end
        bot.loop.call_soon_threadsafe(handler, speaker_id)

    manager = SessionManager(DiscordVoiceTransport(_on_speaking), config)
    bot.session_manager = manager

    @bot.event
    async def on_ready() -> None:
        logger.info("Bot is ready, logged in as %s", bot.user)

    @bot.command(name="join")
    @commands.guild_only()
    async def join(ctx: commands.Context) -> None:
        voice = getattr(ctx.author, "voice", None)
        channel = getattr(voice, "channel", None)
        try:
            await manager.join(ctx.guild.id, channel, DiscordTextChannel(ctx.channel))
        except NotInVoiceChannel:
            await ctx.reply("❌ You need to be in a voice channel to use this command.")
            return
        except AlreadyListening:
            await ctx.reply("ℹ️ I am already listening in this server.")
            return
        except (discord.DiscordException, asyncio.TimeoutError):
            logger.exception("Failed to join voice channel")
            await ctx.reply("❌ Failed to join the voice channel.")
            return
        await ctx.reply(f"🎙️ Successfully joined **{channel.name}**!")

    @bot.command(name="leave")
    @commands.guild_only()
    async def leave(ctx: commands.Context) -> None:
        try:
            await manager.leave(ctx.guild.id)
        except NotListening:
            await ctx.reply("❌ I am not currently in a voice channel.")
            return
        await ctx.reply("🛑 Left the voice channel!")

    return bot


def run_bot(config: Config) -> None:
    token = config.resolved_discord_token()
    if not token:
        raise RuntimeError("A Discord token is required (config discord.token or DISCORD_TOKEN).")
    bot = build_bot(config)
    bot.run(token, log_handler=None)
