import asyncio
import logging
import math
from typing import Optional

import asyncpg
import httpx
from openai import AsyncOpenAI
from posthog import Posthog

from lecture_summary.services.summary.db_utils import SummaryStore
from lecture_summary.services.summary.job_queue import SummaryJobQueue
from lecture_summary.services.summary.llm_utils import SummarizerClient
from lecture_summary.services.summary.nats_utils import TranscriptionSubscriber
from lecture_summary.services.summary.orchestrator import SummaryJobRunner
from lecture_summary.services.summary.transcript_utils import TranscriptResolver
from lecture_summary.utils.config import Settings
from lecture_summary.utils.db_utils import create_pool
from lecture_summary.utils.posthog_client import (
    get_openai_client,
    get_posthog_client,
    shutdown_posthog,
)


class AppContainer:
    """
    Composition root. Every external connection is created once here and passed
    explicitly to the job runner and the trigger adapters.
    """

    def __init__(
        self,
        settings: Settings,
        store: SummaryStore,
        queue: SummaryJobQueue,
        subscriber: Optional[TranscriptionSubscriber] = None,
        pool: Optional[asyncpg.Pool] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        openai_client: Optional[AsyncOpenAI] = None,
        posthog_client: Optional[Posthog] = None,
    ):
        self.settings = settings
        self.store = store
        self.queue = queue
        self.subscriber = subscriber
        self.pool = pool
        self.http_client = http_client
        self.openai_client = openai_client
        self.posthog_client = posthog_client

    @classmethod
    async def create(cls, settings: Settings) -> "AppContainer":
        pool = await create_pool(settings)
        # No timeout: a hung transcript fetch blocks only its own job.
        http_client = httpx.AsyncClient(timeout=None)
        posthog_client = get_posthog_client(settings)
        openai_client = None
        if not settings.mock_llm_calls:
            openai_client = get_openai_client(settings, posthog_client)

        store = SummaryStore(pool)
        runner = SummaryJobRunner(
            resolver=TranscriptResolver(http_client),
            summarizer=SummarizerClient(
                openai_client,
                settings.huggingface_model,
                posthog_enabled=posthog_client is not None,
                mock=settings.mock_llm_calls,
            ),
            store=store,
        )
        queue = SummaryJobQueue(
            runner,
            workers=settings.summary_workers,
            maxsize=settings.summary_queue_maxsize,
        )
        subscriber = TranscriptionSubscriber(
            queue,
            settings.transcriptions_subject,
            drain_timeout=math.ceil(settings.shutdown_grace_period),
        )
        return cls(
            settings,
            store,
            queue,
            subscriber=subscriber,
            pool=pool,
            http_client=http_client,
            openai_client=openai_client,
            posthog_client=posthog_client,
        )

    async def start(self) -> None:
        self.queue.start()
        if self.subscriber is not None:
            await self.subscriber.start(self.settings.nats_url)

    async def close(self) -> None:
        """
        Stops the triggers, drains in-flight jobs, then closes connections.
        All steps share one deadline of `shutdown_grace_period` seconds; a step
        that overruns it is abandoned, and a pool that cannot close in time
        is terminated.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.shutdown_grace_period

        def remaining() -> float:
            return max(deadline - loop.time(), 0.0)

        if self.subscriber is not None:
            try:
                await asyncio.wait_for(self.subscriber.close(), timeout=remaining())
            except asyncio.TimeoutError:
                logging.warning("NATS drain did not finish within the shutdown grace period")
        await self.queue.stop(timeout=remaining())
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.openai_client is not None:
            await self.openai_client.close()
        if self.pool is not None:
            try:
                await asyncio.wait_for(self.pool.close(), timeout=remaining())
                logging.info("Postgres connection pool closed")
            except asyncio.TimeoutError:
                logging.warning("Postgres pool did not close in time; terminating connections")
                self.pool.terminate()
        shutdown_posthog(self.posthog_client)
