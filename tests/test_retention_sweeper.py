import time

import pytest

from conftest import sample_text
from doc_summarizer.cleanup.cleanup_service import RetentionSweeper
from doc_summarizer.cleanup.run_cleanup import parse_args
from doc_summarizer.errors import BlobStoreError

DAY = 24 * 3600


def _expired_document(pipeline, owner="user-1"):
    document = pipeline.registry.upload("old.txt", sample_text(800).encode(), owner_id=owner)
    pipeline.service.submit(document.id, owner)
    pipeline.worker.process(document.id)
    return document


def test_delete_at_is_upload_plus_retention(pipeline):
    document = pipeline.registry.upload("a.txt", b"hello world", owner_id="user-1")
    assert document.delete_at == pytest.approx(document.uploaded_at + 4 * DAY)


def test_find_expired_uses_delete_at(pipeline):
    document = pipeline.registry.upload("a.txt", b"hello world")

    assert pipeline.registry.find_expired(now=document.delete_at - 1) == []
    assert [d.id for d in pipeline.registry.find_expired(now=document.delete_at)] == [document.id]


def test_sweep_leaves_nothing_behind(pipeline):
    document = _expired_document(pipeline)
    sweeper = RetentionSweeper(pipeline.registry)

    stats = sweeper.run_cleanup(now=time.time() + 5 * DAY)

    assert stats["scanned"] == 1
    assert stats["purged"] == 1
    assert stats["errors"] == 0
    assert stats["elapsed_seconds"] >= 0
    assert pipeline.registry.get(document.id) is None
    assert pipeline.job_store.get(document.id) is None
    assert pipeline.cache.get(document.id) is None
    assert pipeline.documents.get_extracted_text(document.id) is None
    assert not (pipeline.blob_store.root_dir / document.storage_ref).exists()
    assert pipeline.service.history("user-1") == []


def test_sweep_ignores_unexpired(pipeline):
    document = _expired_document(pipeline)

    stats = RetentionSweeper(pipeline.registry).run_cleanup(now=time.time())

    assert stats == {"scanned": 0, "purged": 0, "errors": 0, "elapsed_seconds": stats["elapsed_seconds"]}
    assert pipeline.registry.get(document.id) is not None


def test_blob_failure_keeps_metadata_and_continues(pipeline, monkeypatch):
    failing = _expired_document(pipeline)
    healthy = _expired_document(pipeline)
    original_delete = pipeline.blob_store.delete

    def delete(ref):
        if ref == failing.storage_ref:
            raise BlobStoreError("storage unavailable")
        original_delete(ref)

    monkeypatch.setattr(pipeline.blob_store, "delete", delete)

    stats = RetentionSweeper(pipeline.registry).run_cleanup(now=time.time() + 5 * DAY)

    assert stats["purged"] == 1
    assert stats["errors"] == 1
    assert pipeline.registry.get(failing.id) is not None
    assert pipeline.job_store.get(failing.id) is not None
    assert pipeline.registry.get(healthy.id) is None


def test_already_deleted_blob_counts_as_purged(pipeline):
    document = _expired_document(pipeline)
    pipeline.blob_store.delete(document.storage_ref)

    stats = RetentionSweeper(pipeline.registry).run_cleanup(now=time.time() + 5 * DAY)

    assert stats["purged"] == 1
    assert pipeline.registry.get(document.id) is None


def test_background_thread_runs_first_pass_and_stops(pipeline):
    _expired_document(pipeline)
    sweeper = RetentionSweeper(pipeline.registry, interval_hours=6, clock=lambda: time.time() + 5 * DAY)

    sweeper.start()
    try:
        deadline = time.time() + 5
        while pipeline.registry.find_expired(now=time.time() + 5 * DAY) and time.time() < deadline:
            time.sleep(0.01)
    finally:
        sweeper.stop(timeout=5)

    assert pipeline.registry.find_expired(now=time.time() + 5 * DAY) == []
    assert not sweeper.running


def test_runner_arguments():
    args = parse_args(["--once", "--interval", "2"])
    assert args.once is True
    assert args.interval == 2.0
