"""Data models for callscribe."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SessionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"


class JobStage(str, Enum):
    CONVERTED = "converted"
    SIZE_CHECKED = "size_checked"
    TRANSCRIBED = "transcribed"
    SUMMARIZED = "summarized"
    DELIVERED = "delivered"


class JobOutcome(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED_EMPTY = "skipped_empty"
    SKIPPED_BUSY = "skipped_busy"


@dataclass
class Session:
    context_id: str
    state: SessionState = SessionState.IDLE
    connection: Any = None
    text_channel: Any = None
    generation: int = 0
    started_at: Optional[float] = None


@dataclass
class SpeakerSubscription:
    speaker_id: str
    stream: Any
    decoder: Any
    last_activity: float = field(default_factory=time.monotonic)
    chunks: int = 0
    bytes_received: int = 0

    def touch(self, size: int) -> None:
        self.last_activity = time.monotonic()
        self.chunks += 1
        self.bytes_received += size


@dataclass
class PipelineJob:
    """One pipeline cycle.

    ``stage`` is the last stage the job completed; ``failed_at`` is set when
    the job ends in failure and names the stage that failed.
    """

    snapshot_bytes: int = 0
    generation: int = 0
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created_at: float = field(default_factory=time.time)
    stage: Optional[JobStage] = None
    outcome: JobOutcome = JobOutcome.PENDING
    failed_at: Optional[JobStage] = None
    error: Optional[str] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None
    parts_sent: int = 0

    @property
    def finished(self) -> bool:
        return self.outcome is not JobOutcome.PENDING

    def advance(self, stage: JobStage) -> None:
        self.stage = stage
        if stage is JobStage.DELIVERED:
            self.outcome = JobOutcome.SUCCESS

    def fail(self, stage: JobStage, error: str) -> None:
        self.failed_at = stage
        self.error = error
        self.outcome = JobOutcome.FAILED

    def skip(self, outcome: JobOutcome) -> None:
        self.outcome = outcome
