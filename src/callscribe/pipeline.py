"""Flush, convert, transcribe, summarize and deliver one cycle of audio."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, TypeVar

from .aggregator import AudioAggregator
from .config import PipelineConfig
from .converter import FfmpegConverter
from .delivery import send_chunked, send_notice
from .errors import ArtifactTooLarge, DeliveryFailed, TranscriptionFailed
from .models import JobOutcome, JobStage, PipelineJob
from .storage import ArtifactStore
from .summarizer import Summarizer
from .transcriber import Transcriber
from .transport import TextChannel

logger = logging.getLogger("callscribe.pipeline")

T = TypeVar("T")

SUMMARY_FAILED_NOTICE = "⚠️ Summarization failed."
HISTORY_SIZE = 20


def format_summary(summary: str, interval_minutes: float) -> str:
    return f"Summary for the last {interval_minutes:g} minutes:\n{summary}"


class PipelineOrchestrator:
    """Runs pipeline cycles against one session's audio buffer.

    A failure in any stage ends only the current job. ``run_cycle`` never
    raises for stage errors, so the scheduler keeps ticking.
    """

    def __init__(
        self,
        aggregator: AudioAggregator,
        store: ArtifactStore,
        converter: FfmpegConverter,
        transcriber: Transcriber,
        summarizer: Summarizer,
        channel: TextChannel,
        settings: PipelineConfig,
        generation_provider: Optional[Callable[[], int]] = None,
        on_job_finished: Optional[Callable[[PipelineJob], None]] = None,
    ) -> None:
        self.aggregator = aggregator
        self.store = store
        self.converter = converter
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.channel = channel
        self.settings = settings
        self._generation = generation_provider or (lambda: 0)
        self._on_job_finished = on_job_finished
        self._serial = asyncio.Lock()
        self._active = 0
        self.history: Deque[PipelineJob] = deque(maxlen=HISTORY_SIZE)

    @property
    def active_jobs(self) -> int:
        return self._active

    async def run_cycle(self) -> PipelineJob:
        policy = self.settings.overlap_policy
        if policy == "skip" and self._active:
            job = PipelineJob(generation=self._generation())
            job.skip(JobOutcome.SKIPPED_BUSY)
            logger.info(
                "Job %s skipped: %d job(s) still running, audio kept for next cycle",
                job.job_id,
                self._active,
            )
            self._finish(job)
            return job
        if policy == "serialize":
            async with self._serial:
                return await self._run()
        return await self._run()

    async def _run(self) -> PipelineJob:
        self._active += 1
        job = PipelineJob(generation=self._generation())
        try:
            snapshot = self.aggregator.flush_and_reset()
            job.snapshot_bytes = len(snapshot)
            if not snapshot:
                job.skip(JobOutcome.SKIPPED_EMPTY)
                logger.debug("Job %s skipped: no buffered audio", job.job_id)
                return job
            logger.info("Job %s started with %d bytes of audio", job.job_id, len(snapshot))
            await self._process(job, snapshot)
            return job
        finally:
            self._active -= 1
            self._finish(job)

    async def _process(self, job: PipelineJob, snapshot: bytes) -> None:
        pcm_path = None
        artifact_path = None
        try:
            pcm_path = await asyncio.to_thread(self.store.write, job.job_id, "pcm", snapshot)
            artifact_path = self.store.path_for(job.job_id, self.converter.suffix)
            await self._bounded(self.converter.convert(pcm_path, artifact_path))
        except Exception as exc:
            self.store.delete(artifact_path)
            await self._fail(job, JobStage.CONVERTED, exc)
            return
        finally:
            self.store.delete(pcm_path)
        job.advance(JobStage.CONVERTED)

        limit = self.settings.max_artifact_bytes
        try:
            size = self.store.size(artifact_path)
            if size > limit:
                raise ArtifactTooLarge(size, limit)
        except Exception as exc:
            self.store.delete(artifact_path)
            await self._fail(job, JobStage.SIZE_CHECKED, exc)
            return
        job.advance(JobStage.SIZE_CHECKED)

        try:
            transcript = await self._bounded(
                asyncio.to_thread(self.transcriber.transcribe, artifact_path)
            )
            if not (transcript or "").strip():
                raise TranscriptionFailed("Transcription returned no text.")
        except Exception as exc:
            await self._fail(job, JobStage.TRANSCRIBED, exc)
            return
        finally:
            self.store.delete(artifact_path)
        job.transcript = transcript.strip()
        job.advance(JobStage.TRANSCRIBED)

        try:
            summary = await self._bounded(
                asyncio.to_thread(self.summarizer.summarize, job.transcript)
            )
        except Exception as exc:
            await self._fail(job, JobStage.SUMMARIZED, exc)
            return
        job.summary = summary
        job.advance(JobStage.SUMMARIZED)

        if self._stale(job):
            job.fail(JobStage.DELIVERED, "stale session")
            logger.info("Job %s dropped delivery: session has ended", job.job_id)
            return

        try:
            job.parts_sent = await send_chunked(
                self.channel,
                format_summary(summary, self.settings.interval_minutes),
                self.settings.message_limit,
            )
        except (DeliveryFailed, ValueError) as exc:
            await self._fail(job, JobStage.DELIVERED, exc)
            return
        job.advance(JobStage.DELIVERED)
        logger.info("Job %s delivered in %d part(s)", job.job_id, job.parts_sent)

    def _stale(self, job: PipelineJob) -> bool:
        return not self.settings.deliver_after_leave and job.generation != self._generation()

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        timeout = self.settings.stage_timeout_seconds
        if not timeout or timeout <= 0:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)

    async def _fail(self, job: PipelineJob, stage: JobStage, exc: BaseException) -> None:
        if isinstance(exc, asyncio.TimeoutError):
            message = f"timed out after {self.settings.stage_timeout_seconds:g}s"
        else:
            message = str(exc) or type(exc).__name__
        job.fail(stage, message)
        logger.warning(
            "Job %s failed at %s: %s", job.job_id, stage.value, message, exc_info=exc
        )

        if self._stale(job):
            return
        if stage is JobStage.SUMMARIZED:
            await send_notice(self.channel, SUMMARY_FAILED_NOTICE)
        elif self.settings.notify_on_failure and stage is not JobStage.DELIVERED:
            await send_notice(
                self.channel,
                f"⚠️ Processing failed at {stage.value.replace('_', ' ')}: {message}",
            )

    def _finish(self, job: PipelineJob) -> None:
        self.history.append(job)
        if self._on_job_finished is not None:
            try:
                self._on_job_finished(job)
            except Exception:
                logger.exception("on_job_finished callback failed for job %s", job.job_id)
