"""Transcription publisher module for pub/sub event publishing."""

import asyncio
import logging
from typing import Callable, Optional
from pubsub import pub

from ..models.events import UtteranceEvent, CanceledEvent, SessionEvent
from .base import TranscriptionEvent

logger = logging.getLogger(__name__)

UTTERANCE_TOPIC = "transcription.utterance"
CANCELED_TOPIC = "transcription.canceled"
SESSION_TOPIC = "transcription.session"


def topic_for(event: TranscriptionEvent) -> str:
    if isinstance(event, UtteranceEvent):
        return UTTERANCE_TOPIC
    if isinstance(event, CanceledEvent):
        return CANCELED_TOPIC
    if isinstance(event, SessionEvent):
        return SESSION_TOPIC
    raise TypeError(f"Unsupported transcription event: {event!r}")


class TranscriptionPublisher:
    """Publishes backend events on the session's event loop.

    Backends may call publish() from any thread. Delivery is marshalled onto
    the attached loop so listeners run one at a time, in arrival order, and
    never concurrently with the sampler. Events published while detached are
    dropped.
    """

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_attached(self) -> bool:
        return self._loop is not None

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        logger.debug("TranscriptionPublisher attached to event loop")

    def detach(self) -> None:
        self._loop = None
        logger.debug("TranscriptionPublisher detached")

    def publish(self, event: TranscriptionEvent) -> None:
        """Queue an event for delivery on the attached loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"Dropping transcription event while detached: {event!r}")
            return
        try:
            loop.call_soon_threadsafe(self._deliver, event)
        except RuntimeError:
            # loop closed after the check above
            logger.debug(f"Dropping transcription event for closed loop: {event!r}")

    def _deliver(self, event: TranscriptionEvent) -> None:
        if self._loop is None:
            logger.debug(f"Dropping transcription event after detach: {event!r}")
            return
        topic = topic_for(event)
        pub.sendMessage(topic, event=event)
        logger.debug(f"Published transcription event on {topic}")

    def get_callback(self) -> Callable[[TranscriptionEvent], None]:
        """Get callback function for a transcription backend to use."""
        return self.publish
