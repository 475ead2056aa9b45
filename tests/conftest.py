"""Pytest configuration and shared fixtures."""

import itertools
import os
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from openai import AsyncOpenAI

# Settings require a token; set it before any application module reads the environment.
os.environ.setdefault("HUGGINGFACE_TOKEN", "test-token")

from lecture_summary.container import AppContainer  # noqa: E402
from lecture_summary.main import create_app  # noqa: E402
from lecture_summary.services.summary.job_queue import SummaryJobQueue  # noqa: E402
from lecture_summary.services.summary.llm_utils import SummarizerClient  # noqa: E402
from lecture_summary.services.summary.orchestrator import SummaryJobRunner  # noqa: E402
from lecture_summary.services.summary.transcript_utils import TranscriptResolver  # noqa: E402
from lecture_summary.utils.config import Settings  # noqa: E402

LLM_BASE_URL = "https://llm.test/v1"
TRANSCRIPTS_HOST = "transcripts.test"


def chat_completion(content: Optional[str]) -> dict:
    """A minimal chat-completions response body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


class FakeUpstream:
    """
    Stands in for both external HTTP services: the transcript host and the
    chat-completions endpoint. Records every request it receives.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.transcripts: dict[str, httpx.Response] = {}
        self.llm_response = httpx.Response(200, json=chat_completion("A short summary."))

    def add_transcript(self, path: str, response: httpx.Response) -> str:
        self.transcripts[path] = response
        return f"https://{TRANSCRIPTS_HOST}{path}"

    @property
    def transcript_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == TRANSCRIPTS_HOST]

    @property
    def llm_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "llm.test"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == TRANSCRIPTS_HOST:
            return self.transcripts.get(request.url.path, httpx.Response(404))
        if request.url.path == "/v1/chat/completions":
            if callable(self.llm_response):
                return self.llm_response(request)
            return self.llm_response
        return httpx.Response(404)


class InMemorySummaryStore:
    """Append-only fake of SummaryStore with a logical clock for timestamps."""

    def __init__(self):
        self.rows: list[dict] = []
        self.error: Optional[Exception] = None
        self._clock = itertools.count(1)

    async def save(self, lecture_id: str, summary_text: str):
        if self.error is not None:
            raise self.error
        self.rows.append(
            {
                "lecture_id": lecture_id,
                "summary_text": summary_text,
                "timestamp": next(self._clock),
            }
        )

    async def latest(self, lecture_id: str) -> Optional[str]:
        if self.error is not None:
            raise self.error
        rows = [row for row in self.rows if row["lecture_id"] == lecture_id]
        if not rows:
            return None
        return max(rows, key=lambda row: row["timestamp"])["summary_text"]

    async def ping(self) -> None:
        if self.error is not None:
            raise self.error


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        huggingface_token="test-token",
        huggingface_api_url=f"{LLM_BASE_URL}/chat/completions",
        nats_url="",
        summary_workers=2,
        shutdown_grace_period=5,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def store() -> InMemorySummaryStore:
    return InMemorySummaryStore()


def build_http_client(upstream: FakeUpstream) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))


def build_openai_client(http_client: httpx.AsyncClient) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key="test-token",
        base_url=LLM_BASE_URL,
        max_retries=0,
        http_client=http_client,
    )


def build_runner(upstream: FakeUpstream, store) -> SummaryJobRunner:
    http_client = build_http_client(upstream)
    return SummaryJobRunner(
        resolver=TranscriptResolver(http_client),
        summarizer=SummarizerClient(build_openai_client(http_client), "test-model"),
        store=store,
    )


@pytest.fixture
def runner(upstream, store) -> SummaryJobRunner:
    return build_runner(upstream, store)


@pytest.fixture
def container_factory(upstream, store):
    async def factory(settings: Settings) -> AppContainer:
        http_client = build_http_client(upstream)
        openai_client = build_openai_client(http_client)
        runner = SummaryJobRunner(
            resolver=TranscriptResolver(http_client),
            summarizer=SummarizerClient(openai_client, settings.huggingface_model),
            store=store,
        )
        queue = SummaryJobQueue(runner, workers=settings.summary_workers)
        return AppContainer(
            settings,
            store,
            queue,
            http_client=http_client,
            openai_client=openai_client,
        )

    return factory


@pytest.fixture
def client(settings, container_factory):
    """FastAPI test client with the lifespan running, so queue workers are live."""
    app = create_app(settings, container_factory)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def wait_for_jobs(client):
    """Blocks until every queued summary job has finished."""

    def wait():
        client.portal.call(client.app.state.container.queue.join)

    return wait
