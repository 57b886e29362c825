import os
import tempfile

# Keep test log files out of the package directory
os.environ.setdefault("DOC_SUMMARIZER_LOG_DIR", tempfile.mkdtemp(prefix="doc_summarizer_logs_"))

from dataclasses import dataclass
from typing import List

import fakeredis
import pytest

from doc_summarizer.chunking.text_chunker import TextChunker
from doc_summarizer.documents.file_registry import DocumentStore, FileRegistry
from doc_summarizer.errors import CompletionError
from doc_summarizer.extraction.text_extractor import TextExtractor
from doc_summarizer.jobs.job_store import JobStore
from doc_summarizer.jobs.status_cache import StatusCache
from doc_summarizer.service import SummaryService
from doc_summarizer.storage.blob_store import LocalBlobStore
from doc_summarizer.summarization.map_reduce_summarizer import MapReduceSummarizer
from doc_summarizer.workers.summary_worker import RetryPolicy, SummaryWorker


class ScriptedLLM:
    """
    Stand-in for an LLM client.

    Replies are consumed in order; an Exception instance in the script is
    raised instead of returned. Once the script is exhausted every call
    returns `default`.
    """

    def __init__(self, script=None, default="A concise summary of the document."):
        self.script = list(script or [])
        self.default = default
        self.prompts: List[str] = []
        self.contexts: List[str] = []

    def complete(self, prompt: str, context: str = "unknown") -> str:
        self.prompts.append(prompt)
        self.contexts.append(context)
        reply = self.script.pop(0) if self.script else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


class RecordingQueue:
    """Queue double that records pushes instead of talking to RQ."""

    def __init__(self, fail_with: Exception = None):
        self.pushed: List[str] = []
        self.fail_with = fail_with

    def push(self, document_id: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.pushed.append(document_id)
        return document_id


@dataclass
class Pipeline:
    redis: fakeredis.FakeRedis
    cache_redis: fakeredis.FakeRedis
    job_store: JobStore
    documents: DocumentStore
    cache: StatusCache
    blob_store: LocalBlobStore
    registry: FileRegistry
    llm: ScriptedLLM
    summarizer: MapReduceSummarizer
    queue: RecordingQueue
    worker: SummaryWorker
    service: SummaryService
    sleeps: List[float]


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def cache_redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"))


@pytest.fixture
def llm():
    return ScriptedLLM()


@pytest.fixture
def pipeline(redis_client, cache_redis, blob_store, llm):
    job_store = JobStore(redis_client)
    documents = DocumentStore(redis_client)
    cache = StatusCache(cache_redis)
    registry = FileRegistry(documents, blob_store, job_store=job_store, cache=cache)
    summarizer = MapReduceSummarizer(llm, TextChunker(), chunk_delay=0)
    queue = RecordingQueue()
    sleeps: List[float] = []
    worker = SummaryWorker(
        job_store,
        documents,
        cache,
        TextExtractor(blob_store),
        summarizer,
        retry_policy=RetryPolicy(max_attempts=3, backoff_base=1.0),
        sleep=sleeps.append,
    )
    service = SummaryService(job_store, registry, cache, queue)
    return Pipeline(
        redis=redis_client,
        cache_redis=cache_redis,
        job_store=job_store,
        documents=documents,
        cache=cache,
        blob_store=blob_store,
        registry=registry,
        llm=llm,
        summarizer=summarizer,
        queue=queue,
        worker=worker,
        service=service,
        sleeps=sleeps,
    )


def llm_failure(message: str = "connection refused") -> CompletionError:
    return CompletionError(message)


def sample_text(chars: int) -> str:
    """Readable prose of roughly `chars` characters."""
    sentence = "The quarterly report shows steady growth in all regions. "
    repeats = chars // len(sentence) + 1
    return (sentence * repeats)[:chars]
