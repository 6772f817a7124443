"""Transient artifact storage."""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime

logger = logging.getLogger("callscribe.storage")


def timestamp_slug(dt: datetime | None = None) -> str:
    now = dt or datetime.now()
    return now.strftime("%Y-%m-%d_%H-%M-%S")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def sanitize_folder(name: str) -> str:
    value = (name or "").strip()
    if not value:
        return "default"
    return "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in value)


class ArtifactStore:
    """Scoped directory holding the files of in-flight pipeline cycles.

    Every artifact is owned by the stage that consumes it, which calls
    :meth:`delete` on both success and failure paths.
    """

    def __init__(self, base_dir: str, scope: str, generation: int | None = None) -> None:
        self.root = os.path.join(base_dir, sanitize_folder(scope))
        if generation is not None:
            self.root = os.path.join(self.root, f"gen-{generation}")

    def path_for(self, job_id: str, suffix: str) -> str:
        ensure_dir(self.root)
        basename = f"{timestamp_slug()}--{job_id}"
        return os.path.join(self.root, f"{basename}.{suffix.lstrip('.')}")

    def write(self, job_id: str, suffix: str, data: bytes) -> str:
        path = self.path_for(job_id, suffix)
        with open(path, "wb") as handle:
            handle.write(data)
        return path

    @staticmethod
    def size(path: str) -> int:
        return os.path.getsize(path)

    @staticmethod
    def delete(path: str | None) -> None:
        if not path:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Could not delete artifact %s: %s", path, exc)

    def list(self) -> list[str]:
        if not os.path.isdir(self.root):
            return []
        return sorted(os.path.join(self.root, name) for name in os.listdir(self.root))

    def purge(self) -> None:
        if os.path.isdir(self.root):
            shutil.rmtree(self.root, ignore_errors=True)
