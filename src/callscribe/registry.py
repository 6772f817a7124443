"""Per-speaker audio subscriptions."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from .aggregator import AudioAggregator
from .models import SpeakerSubscription
from .transport import VoiceTransport

logger = logging.getLogger("callscribe.registry")


class SpeakerSubscriptionRegistry:
    """Tracks one live subscription per speaker.

    Start and end events are idempotent per speaker id. Entries are removed
    from the map before their resources are released, so each stream and
    decoder has exactly one release.
    """

    def __init__(
        self,
        transport: VoiceTransport,
        connection: Any,
        aggregator: AudioAggregator,
    ) -> None:
        self._transport = transport
        self._connection = connection
        self._aggregator = aggregator
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, SpeakerSubscription] = {}

    def on_speaking_start(self, speaker_id: str) -> bool:
        speaker_id = str(speaker_id)
        with self._lock:
            if speaker_id in self._subscriptions:
                logger.debug("Already capturing audio for %s", speaker_id)
                return False

            stream = None
            decoder = None
            try:
                stream = self._transport.subscribe(self._connection, speaker_id)
                decoder = self._transport.create_decoder(speaker_id)
                subscription = SpeakerSubscription(
                    speaker_id=speaker_id, stream=stream, decoder=decoder
                )
                stream.attach(self._make_callback(subscription))
            except Exception:
                logger.exception("Failed to subscribe to speaker %s", speaker_id)
                _close_quietly(stream, decoder, speaker_id)
                return False

            self._subscriptions[speaker_id] = subscription

        logger.info("Started audio capture for %s", speaker_id)
        return True

    def on_speaking_end(self, speaker_id: str) -> bool:
        speaker_id = str(speaker_id)
        with self._lock:
            subscription = self._subscriptions.pop(speaker_id, None)
        if subscription is None:
            return False
        self._release(subscription)
        logger.info(
            "Stopped audio capture for %s (%d chunks, %d bytes)",
            speaker_id,
            subscription.chunks,
            subscription.bytes_received,
        )
        return True

    def teardown_all(self) -> int:
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for subscription in subscriptions:
            self._release(subscription)
        if subscriptions:
            logger.info("Released %d speaker subscriptions", len(subscriptions))
        return len(subscriptions)

    def get(self, speaker_id: str) -> Optional[SpeakerSubscription]:
        with self._lock:
            return self._subscriptions.get(str(speaker_id))

    def active_speakers(self) -> List[str]:
        with self._lock:
            return list(self._subscriptions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def __contains__(self, speaker_id: object) -> bool:
        with self._lock:
            return str(speaker_id) in self._subscriptions

    def _make_callback(self, subscription: SpeakerSubscription):
        decoder = subscription.decoder

        def _on_frame(frame: bytes) -> None:
            try:
                pcm = decoder.decode(frame)
            except Exception as exc:
                logger.debug(
                    "Dropping undecodable frame from %s: %s",
                    subscription.speaker_id,
                    exc,
                )
                return
            if not pcm:
                return
            subscription.touch(len(pcm))
            self._aggregator.append(pcm)

        return _on_frame

    @staticmethod
    def _release(subscription: SpeakerSubscription) -> None:
        stream = subscription.stream
        try:
            stream.detach()
        except Exception:
            logger.exception("Failed to detach stream for %s", subscription.speaker_id)
        _close_quietly(stream, subscription.decoder, subscription.speaker_id)


def _close_quietly(stream, decoder, speaker_id: str) -> None:
    for resource in (stream, decoder):
        if resource is None:
            continue
        try:
            resource.close()
        except Exception:
            logger.exception("Failed to close %r for %s", resource, speaker_id)
