"""
Background retention sweeper for uploaded documents.

Removes every document whose delete_at has passed: blob first, then the
Document record, extracted text, SummaryJob and status cache entry.

Runs one pass at start, then every CLEANUP_INTERVAL_HOURS.
"""
import time
import threading
import signal
from typing import Callable, Optional

from doc_summarizer.config import CLEANUP_INTERVAL_HOURS
from doc_summarizer.documents.file_registry import FileRegistry
from doc_summarizer.logging_config import get_cleanup_logger, DocumentContext

logger = get_cleanup_logger()


class RetentionSweeper:
    """
    Background service that periodically purges expired documents.

    Usage:
        sweeper = RetentionSweeper(registry)
        sweeper.start()  # Runs in background thread

        # Or run in foreground (blocking):
        sweeper.run_forever()
    """

    def __init__(
        self,
        registry: FileRegistry,
        interval_hours: Optional[float] = None,
        clock: Callable[[], float] = time.time
    ):
        self.registry = registry
        self.interval_hours = interval_hours or CLEANUP_INTERVAL_HOURS
        self._clock = clock

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        logger.info(f"[INIT] RetentionSweeper initialized | interval={self.interval_hours}h")

    def run_cleanup(self, now: Optional[float] = None) -> dict:
        """
        Run a single sweep.

        Returns:
            Stats dictionary: scanned, purged, errors, elapsed_seconds
        """
        start_time = time.time()
        now = self._clock() if now is None else now
        logger.info(f"[SWEEP] START | now={now:.0f}")

        expired = self.registry.find_expired(now)
        purged = 0
        errors = 0

        for document in expired:
            with DocumentContext(document.id):
                try:
                    self.registry.purge(document)
                    purged += 1
                except Exception as e:
                    # Left in the expiry index; the next pass retries it
                    errors += 1
                    logger.error(f"[SWEEP] Failed to purge | ref={document.storage_ref} | error={e}", exc_info=True)

        elapsed = time.time() - start_time
        logger.info(f"[SWEEP] END | elapsed={elapsed:.2f}s | scanned={len(expired)} | purged={purged} | errors={errors}")

        return {
            "scanned": len(expired),
            "purged": purged,
            "errors": errors,
            "elapsed_seconds": elapsed,
        }

    def _run_loop(self):
        """Internal loop: sweep, then wait one interval or until stopped."""
        logger.info(f"[SERVICE] Background sweep loop started | interval={self.interval_hours}h")

        while not self._stop_event.is_set():
            try:
                self.run_cleanup()
            except Exception as e:
                logger.error(f"[SERVICE] Sweep cycle failed: {e}", exc_info=True)

            if self._stop_event.wait(timeout=self.interval_hours * 3600):
                break

        logger.info("[SERVICE] Background sweep loop stopped")

    def start(self):
        """Start the sweeper in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("[SERVICE] Already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="retention-sweeper", daemon=True)
        self._thread.start()
        logger.info("[SERVICE] Started background thread")

    def stop(self, timeout: float = 10.0):
        if self._thread is None or not self._thread.is_alive():
            logger.debug("[SERVICE] Not running")
            return

        logger.info("[SERVICE] Stopping...")
        self._stop_event.set()
        self._thread.join(timeout=timeout)

        if self._thread.is_alive():
            logger.warning(f"[SERVICE] Thread did not stop within {timeout}s")
        else:
            logger.info("[SERVICE] Stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_forever(self):
        """
        Run the sweeper in foreground (blocking).

        Handles SIGINT and SIGTERM for graceful shutdown.
        """
        def signal_handler(signum, frame):
            sig_name = signal.Signals(signum).name
            logger.info(f"[SERVICE] Received {sig_name}, shutting down...")
            self._stop_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        logger.info("[SERVICE] Running in foreground (Ctrl+C to stop)")
        self._run_loop()
