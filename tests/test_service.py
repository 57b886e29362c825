import threading

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import RecordingQueue, sample_text
from doc_summarizer.errors import NotFoundError, ValidationError
from doc_summarizer.models import CacheEntry, JobStatus, SubmitResult
from doc_summarizer.service import SummaryService


@pytest.fixture
def document(pipeline):
    return pipeline.registry.upload("report.txt", sample_text(1000).encode(), owner_id="user-1")


def test_submit_accepts_and_enqueues_once(pipeline, document):
    first = pipeline.service.submit(document.id, "user-1")
    second = pipeline.service.submit(document.id, "user-1")

    assert first == SubmitResult.ACCEPTED
    assert second == SubmitResult.ALREADY_ACTIVE
    assert pipeline.queue.pushed == [document.id]
    assert len(pipeline.redis.keys("job:*")) == 1


def test_double_submit_runs_worker_once(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    pipeline.service.submit(document.id, "user-1")

    for document_id in pipeline.queue.pushed:
        pipeline.worker.process(document_id)

    assert pipeline.llm.calls == 1


def test_submit_while_processing_is_already_active(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    pipeline.job_store.claim(document.id)

    assert pipeline.service.submit(document.id, "user-1") == SubmitResult.ALREADY_ACTIVE


def test_submit_after_completion(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    pipeline.worker.process(document.id)

    assert pipeline.service.submit(document.id, "user-1") == SubmitResult.ALREADY_COMPLETED
    assert pipeline.queue.pushed == [document.id]


def test_resubmit_after_failure_requeues(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    pipeline.job_store.fail(document.id, "summarization_failed", "LLM down")

    assert pipeline.service.submit(document.id, "user-1") == SubmitResult.ACCEPTED
    assert pipeline.queue.pushed == [document.id, document.id]
    assert pipeline.service.get_status(document.id).status == JobStatus.PENDING


def test_submit_unknown_document(pipeline):
    assert pipeline.service.submit("unknown-doc", "user-1") == SubmitResult.NOT_FOUND
    assert pipeline.queue.pushed == []


def test_submit_other_users_document_is_not_found(pipeline, document):
    assert pipeline.service.submit(document.id, "intruder") == SubmitResult.NOT_FOUND


def test_anonymous_caller_cannot_touch_owned_document(pipeline, document):
    assert pipeline.service.submit(document.id, None) == SubmitResult.NOT_FOUND
    with pytest.raises(NotFoundError):
        pipeline.service.delete(document.id, None)

    assert pipeline.registry.get(document.id) is not None
    assert pipeline.queue.pushed == []


def test_unowned_document_is_shared(pipeline):
    shared = pipeline.registry.upload("shared.txt", sample_text(500).encode())

    assert pipeline.service.submit(shared.id, None) == SubmitResult.ACCEPTED
    assert pipeline.service.submit(shared.id, "user-1") == SubmitResult.ALREADY_ACTIVE


def test_concurrent_submits_create_one_job(pipeline, document):
    threads = 8
    barrier = threading.Barrier(threads)
    results = []
    lock = threading.Lock()

    def submit():
        barrier.wait()
        result = pipeline.service.submit(document.id, "user-1")
        with lock:
            results.append(result)

    workers = [threading.Thread(target=submit) for _ in range(threads)]
    for t in workers:
        t.start()
    for t in workers:
        t.join(timeout=10)

    assert len(results) == threads
    assert results.count(SubmitResult.ACCEPTED) == 1
    assert results.count(SubmitResult.ALREADY_ACTIVE) == threads - 1
    assert len(pipeline.redis.keys("job:*")) == 1
    assert pipeline.queue.pushed == [document.id]


@pytest.mark.parametrize("bad_id", ["", "../etc/passwd", "a b", "x" * 200])
def test_invalid_document_id(pipeline, bad_id):
    with pytest.raises(ValidationError):
        pipeline.service.submit(bad_id, "user-1")
    with pytest.raises(ValidationError):
        pipeline.service.get_status(bad_id)


def test_enqueue_failure_rolls_back(pipeline, document):
    service = SummaryService(
        pipeline.job_store,
        pipeline.registry,
        pipeline.cache,
        RecordingQueue(fail_with=RedisConnectionError("queue down")),
    )

    with pytest.raises(RedisConnectionError):
        service.submit(document.id, "user-1")

    assert pipeline.job_store.get(document.id) is None
    assert pipeline.cache.get(document.id) is None
    # A later submit can still go through
    assert pipeline.service.submit(document.id, "user-1") == SubmitResult.ACCEPTED


def test_get_status_after_cache_miss_matches_durable_state(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    pipeline.worker.process(document.id)
    pipeline.cache.invalidate(document.id)

    entry = pipeline.service.get_status(document.id)

    job = pipeline.job_store.get(document.id)
    assert entry == CacheEntry.from_job(job)
    assert entry.status == JobStatus.COMPLETED
    # Repopulated with the completed TTL
    assert 3598 <= pipeline.cache_redis.ttl(f"summary:{document.id}") <= 3600


def test_get_status_never_calls_llm(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    for _ in range(3):
        pipeline.service.get_status(document.id)
    assert pipeline.llm.calls == 0


def test_get_status_unknown_id(pipeline):
    with pytest.raises(NotFoundError):
        pipeline.service.get_status("nope")


def test_delete_purges_everything(pipeline, document):
    pipeline.service.submit(document.id, "user-1")
    pipeline.worker.process(document.id)

    pipeline.service.delete(document.id, "user-1")

    assert pipeline.registry.get(document.id) is None
    assert pipeline.job_store.get(document.id) is None
    assert pipeline.cache.get(document.id) is None
    assert pipeline.documents.get_extracted_text(document.id) is None
    assert list(pipeline.blob_store.root_dir.iterdir()) == []


def test_delete_checks_ownership(pipeline, document):
    with pytest.raises(NotFoundError):
        pipeline.service.delete(document.id, "intruder")
    assert pipeline.registry.get(document.id) is not None


def test_history_lists_owner_jobs(pipeline, document):
    other = pipeline.registry.upload("other.txt", sample_text(500).encode(), owner_id="user-2")
    pipeline.service.submit(document.id, "user-1")
    pipeline.service.submit(other.id, "user-2")

    history = pipeline.service.history("user-1")

    assert [job.id for job in history] == [document.id]


def test_history_requires_owner(pipeline):
    with pytest.raises(ValidationError):
        pipeline.service.history("")
