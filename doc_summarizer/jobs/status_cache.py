"""
Status cache: short-lived snapshots of SummaryJob state for polling.

Entries live under "summary:{document_id}" with a TTL chosen by job status.
The cache is never the source of truth; every Redis failure is logged and
treated as a miss.
"""
import json
from typing import Dict, Optional, Union

from redis import Redis
from redis.exceptions import RedisError

from doc_summarizer.config import CACHE_TTL_SECONDS, CACHE_KEY_PREFIX
from doc_summarizer.logging_config import get_cache_logger
from doc_summarizer.models import CacheEntry, JobStatus

logger = get_cache_logger()


def ttl_for_status(status: Union[JobStatus, str], ttl_table: Dict[str, int] = CACHE_TTL_SECONDS) -> int:
    """TTL in seconds for an entry in the given status."""
    return ttl_table[JobStatus(status).value]


class StatusCache:

    def __init__(
        self,
        redis_client: Redis,
        ttl_table: Optional[Dict[str, int]] = None,
        key_prefix: str = CACHE_KEY_PREFIX
    ):
        self.redis = redis_client
        self.ttl_table = dict(ttl_table or CACHE_TTL_SECONDS)
        self.key_prefix = key_prefix

        missing = {s.value for s in JobStatus} - set(self.ttl_table)
        if missing:
            raise ValueError(f"TTL table missing statuses: {sorted(missing)}")

    def _key(self, document_id: str) -> str:
        return f"{self.key_prefix}{document_id}"

    def ttl_for(self, status: Union[JobStatus, str]) -> int:
        return ttl_for_status(status, self.ttl_table)

    def get(self, document_id: str) -> Optional[CacheEntry]:
        try:
            raw = self.redis.get(self._key(document_id))
        except RedisError as e:
            logger.warning(f"[CACHE] GET failed | document_id={document_id} | error={e}")
            return None

        if raw is None:
            logger.debug(f"[CACHE] MISS | document_id={document_id}")
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[CACHE] Corrupt entry ignored | document_id={document_id} | error={e}")
            return None

        logger.debug(f"[CACHE] HIT | document_id={document_id} | status={entry.status.value}")
        return entry

    def put(self, document_id: str, entry: CacheEntry) -> None:
        ttl = self.ttl_for(entry.status)
        try:
            self.redis.setex(self._key(document_id), ttl, json.dumps(entry.to_dict()))
            logger.debug(f"[CACHE] PUT | document_id={document_id} | status={entry.status.value} | ttl={ttl}s")
        except RedisError as e:
            logger.warning(f"[CACHE] PUT failed | document_id={document_id} | error={e}")

    def invalidate(self, document_id: str) -> None:
        try:
            self.redis.delete(self._key(document_id))
            logger.debug(f"[CACHE] INVALIDATE | document_id={document_id}")
        except RedisError as e:
            logger.warning(f"[CACHE] INVALIDATE failed | document_id={document_id} | error={e}")
