"""Session lifecycle for one call context."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from .aggregator import AudioAggregator
from .config import Config
from .converter import FfmpegConverter
from .errors import AlreadyListening, NoActiveConnection, NotListening
from .models import Session, SessionState
from .pipeline import PipelineOrchestrator
from .registry import SpeakerSubscriptionRegistry
from .scheduler import CycleScheduler
from .storage import ArtifactStore
from .summarizer import Summarizer, build_summarizer
from .transcriber import Transcriber, build_transcriber
from .transport import TextChannel, VoiceTransport

logger = logging.getLogger("callscribe.session")


class SessionController:
    """Idle -> Listening -> Stopping -> Idle for one call context."""

    def __init__(
        self,
        context_id: str,
        transport: VoiceTransport,
        config: Config,
        converter: FfmpegConverter,
        transcriber: Transcriber,
        summarizer: Summarizer,
    ) -> None:
        self.session = Session(context_id=str(context_id))
        self.transport = transport
        self.config = config
        self.converter = converter
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.aggregator: Optional[AudioAggregator] = None
        self.registry: Optional[SpeakerSubscriptionRegistry] = None
        self.orchestrator: Optional[PipelineOrchestrator] = None
        self.scheduler: Optional[CycleScheduler] = None
        self.store: Optional[ArtifactStore] = None
        self._transition = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def listening(self) -> bool:
        return self.session.state is SessionState.LISTENING

    async def join(self, channel_ref: Any, text_channel: TextChannel) -> None:
        async with self._transition:
            if self.session.state is not SessionState.IDLE:
                raise AlreadyListening(
                    f"Already listening in context {self.session.context_id}."
                )

            connection = await self.transport.join(channel_ref)

            session = self.session
            session.connection = connection
            session.text_channel = text_channel
            session.started_at = time.time()

            self.aggregator = AudioAggregator()
            self.registry = SpeakerSubscriptionRegistry(
                self.transport, connection, self.aggregator
            )
            self.store = ArtifactStore(
                self.config.work_dir, session.context_id, session.generation
            )
            self.orchestrator = PipelineOrchestrator(
                aggregator=self.aggregator,
                store=self.store,
                converter=self.converter,
                transcriber=self.transcriber,
                summarizer=self.summarizer,
                channel=text_channel,
                settings=self.config.pipeline,
                generation_provider=lambda: session.generation,
            )
            self.scheduler = CycleScheduler(name=f"session-{session.context_id}")
            self.scheduler.start(
                self.config.pipeline.interval_seconds, self.orchestrator.run_cycle
            )
            session.state = SessionState.LISTENING
            logger.info("Session %s listening", session.context_id)

    async def leave(self) -> None:
        async with self._transition:
            session = self.session
            if session.state is not SessionState.LISTENING:
                raise NotListening(f"Not listening in context {session.context_id}.")

            session.state = SessionState.STOPPING
            connection = session.connection
            try:
                self.scheduler.stop()
                self.registry.teardown_all()
                dropped = self.aggregator.discard()
                if dropped:
                    logger.info(
                        "Session %s discarded %d bytes of unflushed audio",
                        session.context_id,
                        dropped,
                    )
                session.generation += 1
                try:
                    await self.transport.leave(connection)
                except NoActiveConnection:
                    logger.warning(
                        "Session %s had no active connection to release",
                        session.context_id,
                    )
                if self.orchestrator.active_jobs == 0:
                    self.store.purge()
            finally:
                session.connection = None
                session.started_at = None
                session.state = SessionState.IDLE
            logger.info("Session %s left", session.context_id)

    def on_speaking_start(self, speaker_id: str) -> None:
        if self.listening and self.registry is not None:
            self.registry.on_speaking_start(speaker_id)

    def on_speaking_end(self, speaker_id: str) -> None:
        if self.listening and self.registry is not None:
            self.registry.on_speaking_end(speaker_id)


class SessionManager:
    """Keeps at most one SessionController per call context."""

    def __init__(
        self,
        transport: VoiceTransport,
        config: Config,
        converter: Optional[FfmpegConverter] = None,
        transcriber: Optional[Transcriber] = None,
        summarizer: Optional[Summarizer] = None,
    ) -> None:
        self.transport = transport
        self.config = config
        self.converter = converter or FfmpegConverter(config.audio)
        self.transcriber = transcriber or build_transcriber(config)
        self.summarizer = summarizer or build_summarizer(config)
        self._sessions: Dict[str, SessionController] = {}

    def get(self, context_id: Any) -> SessionController:
        key = str(context_id)
        controller = self._sessions.get(key)
        if controller is None:
            controller = SessionController(
                key,
                self.transport,
                self.config,
                self.converter,
                self.transcriber,
                self.summarizer,
            )
            self._sessions[key] = controller
        return controller

    def find(self, context_id: Any) -> Optional[SessionController]:
        return self._sessions.get(str(context_id))

    async def join(self, context_id: Any, channel_ref: Any, text_channel: TextChannel) -> SessionController:
        controller = self.get(context_id)
        await controller.join(channel_ref, text_channel)
        return controller

    async def leave(self, context_id: Any) -> None:
        controller = self.find(context_id)
        if controller is None:
            raise NotListening(f"Not listening in context {context_id}.")
        await controller.leave()

    def listening_contexts(self) -> List[str]:
        return [key for key, ctrl in self._sessions.items() if ctrl.listening]

    async def shutdown(self) -> None:
        for key in self.listening_contexts():
            try:
                await self._sessions[key].leave()
            except NotListening:
                continue
