"""
Component wiring.

Every collaborator is built once here and injected; no module holds a
live client of its own. Tests pass fakes for any of the overridable pieces.
"""
from dataclasses import dataclass
from typing import Optional

from redis import Redis

from doc_summarizer import config
from doc_summarizer.chunking.text_chunker import TextChunker
from doc_summarizer.documents.file_registry import DocumentStore, FileRegistry
from doc_summarizer.extraction.text_extractor import TextExtractor
from doc_summarizer.jobs.job_store import JobStore
from doc_summarizer.jobs.status_cache import StatusCache
from doc_summarizer.logging_config import get_worker_logger
from doc_summarizer.queues.enqueue import SummaryQueue, create_summary_queue
from doc_summarizer.queues.rate_limiter import RateLimiter
from doc_summarizer.service import SummaryService
from doc_summarizer.storage.blob_store import BlobStore, create_blob_store
from doc_summarizer.summarization.llm_client import LLMClient, create_llm_client
from doc_summarizer.summarization.map_reduce_summarizer import MapReduceSummarizer
from doc_summarizer.workers.summary_worker import SummaryWorker

logger = get_worker_logger()


@dataclass
class Components:
    redis: Redis
    cache_redis: Redis
    job_store: JobStore
    documents: DocumentStore
    cache: StatusCache
    blob_store: BlobStore
    registry: FileRegistry
    extractor: TextExtractor
    llm: LLMClient
    summarizer: MapReduceSummarizer
    queue: SummaryQueue
    rate_limiter: RateLimiter
    worker: SummaryWorker
    service: SummaryService


def _redis_client(db: int, decode_responses: bool = True) -> Redis:
    return Redis(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        password=config.REDIS_PASSWORD,
        db=db,
        decode_responses=decode_responses
    )


def build_components(
    redis_client: Optional[Redis] = None,
    cache_client: Optional[Redis] = None,
    blob_store: Optional[BlobStore] = None,
    llm: Optional[LLMClient] = None,
    queue: Optional[SummaryQueue] = None,
    summarizer: Optional[MapReduceSummarizer] = None
) -> Components:
    redis_client = redis_client or _redis_client(config.REDIS_DB)
    cache_client = cache_client or _redis_client(config.REDIS_CACHE_DB)

    job_store = JobStore(redis_client)
    documents = DocumentStore(redis_client)
    cache = StatusCache(cache_client)
    blob_store = blob_store or create_blob_store()
    registry = FileRegistry(documents, blob_store, job_store=job_store, cache=cache)
    extractor = TextExtractor(blob_store)
    llm = llm or create_llm_client()
    summarizer = summarizer or MapReduceSummarizer(llm, TextChunker())

    if queue is None:
        # RQ pickles job payloads and needs raw bytes back
        queue = create_summary_queue(_redis_client(config.REDIS_DB, decode_responses=False))

    rate_limiter = RateLimiter(redis_client)
    worker = SummaryWorker(
        job_store, documents, cache, extractor, summarizer, rate_limiter=rate_limiter
    )
    service = SummaryService(job_store, registry, cache, queue)

    logger.info(
        f"[BOOTSTRAP] Components ready | llm_backend={config.LLM_BACKEND} | "
        f"blob_backend={config.BLOB_BACKEND} | model={config.SUMMARY_MODEL}"
    )
    return Components(
        redis=redis_client,
        cache_redis=cache_client,
        job_store=job_store,
        documents=documents,
        cache=cache,
        blob_store=blob_store,
        registry=registry,
        extractor=extractor,
        llm=llm,
        summarizer=summarizer,
        queue=queue,
        rate_limiter=rate_limiter,
        worker=worker,
        service=service,
    )


def close_components(components: Components) -> None:
    for client in (components.redis, components.cache_redis):
        client.close()
    session = getattr(components.llm, "session", None)
    if session is not None:
        session.close()
