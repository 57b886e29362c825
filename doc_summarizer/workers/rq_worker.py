"""
RQ worker entry point.

Usage:
    python -m doc_summarizer.workers.rq_worker
    python -m doc_summarizer.workers.rq_worker --workers 1 --burst
"""
import argparse

from redis import Redis
from rq import Queue, Worker
from rq.worker_pool import WorkerPool

from doc_summarizer.logging_config import get_worker_logger, setup_all_loggers
from doc_summarizer import config

logger = get_worker_logger()


def parse_args():
    parser = argparse.ArgumentParser(description="Summary job worker")
    parser.add_argument(
        "--workers",
        type=int,
        default=config.WORKER_CONCURRENCY,
        help=f"Number of work horses (default: {config.WORKER_CONCURRENCY})"
    )
    parser.add_argument(
        "--burst",
        action="store_true",
        help="Exit once the queue is empty"
    )
    return parser.parse_args()


def main():
    args = parse_args()
    setup_all_loggers()

    # RQ stores pickled payloads; this connection must not decode responses
    redis_conn = Redis(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        password=config.REDIS_PASSWORD,
        db=config.REDIS_DB
    )
    queues = [Queue(config.SUMMARY_QUEUE_NAME, connection=redis_conn)]

    logger.info("RQ Worker starting...")
    logger.info(f"Listening on queues: {[q.name for q in queues]} | workers={args.workers}")

    if args.workers > 1:
        pool = WorkerPool(queues, connection=redis_conn, num_workers=args.workers)
        pool.start(burst=args.burst)
    else:
        worker = Worker(queues, connection=redis_conn)
        worker.work(burst=args.burst)


if __name__ == "__main__":
    main()
