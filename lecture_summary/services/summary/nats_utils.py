import asyncio
import json
import logging
from typing import Optional

import nats
from nats.aio.client import Client as NATS
from nats.aio.msg import Msg
from pydantic import ValidationError as PayloadValidationError

from lecture_summary.schemas.summary import SummaryJob, TranscriptionCompletedEvent
from lecture_summary.services.summary.job_queue import SummaryJobQueue
from lecture_summary.utils.errors import BusError
from lecture_summary.utils.metrics import nats_messages_total

CONNECT_TIMEOUT_SECONDS = 5.0


def parse_event(data: bytes) -> TranscriptionCompletedEvent:
    """Decodes a transcriptions message; raises ValueError on bad JSON or missing fields."""
    payload = json.loads(data.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("message payload must be a JSON object")
    return TranscriptionCompletedEvent(**payload)


class TranscriptionSubscriber:
    """
    Feeds "transcription completed" NATS events into the summary job queue.

    Consumption is at-most-once: a message that cannot be decoded or queued is
    logged and dropped, never requeued.
    """

    def __init__(self, queue: SummaryJobQueue, subject: str, drain_timeout: int = 30):
        self._queue = queue
        self._subject = subject
        self._drain_timeout = drain_timeout
        self._nc: Optional[NATS] = None

    @property
    def connected(self) -> bool:
        return self._nc is not None and self._nc.is_connected

    async def handle_message(self, msg: Msg) -> None:
        """Handles one message; never raises so the subscription keeps running."""
        try:
            event = parse_event(msg.data)
        except (ValueError, PayloadValidationError) as e:
            logging.error(f"Discarding malformed message on subject {msg.subject}: {e}")
            nats_messages_total.labels(subject=self._subject, outcome="invalid").inc()
            return

        logging.info(
            f"[{event.lecture_id}]: Received transcription completed message"
        )
        try:
            await self._queue.enqueue(
                SummaryJob(
                    lecture_id=event.lecture_id,
                    transcription_json_url=event.transcription_json_url,
                    trigger="nats",
                )
            )
        except Exception as e:
            logging.error(
                f"[{event.lecture_id}]: Error handling message on subject {msg.subject}: {e}"
            )
            nats_messages_total.labels(subject=self._subject, outcome="failed").inc()
            return
        nats_messages_total.labels(subject=self._subject, outcome="queued").inc()

    async def start(self, nats_url: str) -> bool:
        """
        Connects and subscribes. Returns False instead of raising when the bus is
        disabled or unreachable, so the service keeps running without it.
        """
        try:
            await self._connect_and_subscribe(nats_url)
        except BusError as e:
            logging.warning(f"NATS trigger disabled: {e}")
            return False
        return True

    async def _connect_and_subscribe(self, nats_url: str) -> None:
        if not nats_url:
            raise BusError("NATS_URL is not defined")

        async def _error_cb(e: Exception) -> None:
            logging.error(f"NATS error: {e}")

        async def _disconnected_cb() -> None:
            logging.warning("Lost connection to NATS; waiting for reconnect")

        async def _reconnected_cb() -> None:
            logging.info("Reconnected to NATS")

        try:
            self._nc = await asyncio.wait_for(
                nats.connect(
                    servers=[nats_url],
                    drain_timeout=self._drain_timeout,
                    error_cb=_error_cb,
                    disconnected_cb=_disconnected_cb,
                    reconnected_cb=_reconnected_cb,
                ),
                timeout=CONNECT_TIMEOUT_SECONDS,
            )
            logging.info("Connected to NATS successfully")
            await self._nc.subscribe(self._subject, cb=self.handle_message)
        except Exception as e:
            await self.close()
            raise BusError(f"Failed to connect to NATS at {nats_url}: {e}") from e
        logging.info(f"Subscribed to NATS subject: {self._subject}")

    async def close(self) -> None:
        """Drains the subscription and closes the connection."""
        nc, self._nc = self._nc, None
        if nc is None or nc.is_closed:
            return
        try:
            await nc.drain()
        except Exception as e:
            logging.error(f"Error draining NATS connection: {e}")
