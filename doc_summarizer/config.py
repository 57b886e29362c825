import os
from dataclasses import dataclass

# Redis settings
REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
REDIS_PORT = int(os.environ.get("REDIS_PORT", 6379))
REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD") or None
REDIS_DB = int(os.environ.get("REDIS_DB", 0))              # Durable Document/SummaryJob records
REDIS_CACHE_DB = int(os.environ.get("REDIS_CACHE_DB", 1))  # Status cache entries

# LLM Backend settings
LLM_BACKEND = os.environ.get("LLM_BACKEND", "ollama")  # "ollama" or "vllm"
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434")
VLLM_URL = os.environ.get("VLLM_URL", "http://localhost:8000")
SUMMARY_MODEL = os.environ.get("SUMMARY_MODEL", "gemma3:4b")
SUMMARY_TIMEOUT = int(os.environ.get("SUMMARY_TIMEOUT", 300))  # 5 minutes per LLM call
LLM_TEMPERATURE = 0.3
LLM_MAX_TOKENS = 2000

# Summarization settings
DIRECT_SUMMARY_MAX_CHARS = int(os.environ.get("DIRECT_SUMMARY_MAX_CHARS", 8000))
MAX_CHUNKS_PER_DOCUMENT = int(os.environ.get("MAX_CHUNKS_PER_DOCUMENT", 10))
CHUNK_DELAY_SECONDS = float(os.environ.get("CHUNK_DELAY_SECONDS", 1.0))  # Pause between chunk calls
DIRECT_SUMMARY_WORDS = "150-300"
CHUNK_SUMMARY_WORDS = 200
FINAL_SUMMARY_WORDS = "300-500"

# Extraction settings
DOWNLOAD_TIMEOUT = float(os.environ.get("DOWNLOAD_TIMEOUT", 30))  # Seconds per blob download
MIN_ALNUM_RATIO = 0.3  # Below this the extraction result is treated as garbage

# Upload settings
MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_EXTENSIONS = (".pdf", ".docx", ".doc", ".txt", ".md")

# Blob storage settings
BLOB_BACKEND = os.environ.get("BLOB_BACKEND", "local")  # "local" or "http"
BLOB_STORE_DIR = os.environ.get("BLOB_STORE_DIR", "/tmp/doc_summarizer/blobs")
BLOB_BASE_URL = os.environ.get("BLOB_BASE_URL", "http://localhost:9000/blobs")

# Status cache TTLs (seconds), keyed by job status
CACHE_TTL_SECONDS = {
    "pending": 60,       # 1 minute
    "processing": 60,    # 1 minute
    "completed": 3600,   # 1 hour
    "failed": 300,       # 5 minutes
}
CACHE_KEY_PREFIX = "summary:"

# Queue / worker settings
SUMMARY_QUEUE_NAME = "summary"
JOB_MAX_ATTEMPTS = int(os.environ.get("JOB_MAX_ATTEMPTS", 3))
JOB_BACKOFF_BASE_SECONDS = float(os.environ.get("JOB_BACKOFF_BASE_SECONDS", 1.0))

# Worst case for one RQ job: every attempt downloads once, then makes one LLM
# call per chunk plus the combine call, each bounded by SUMMARY_TIMEOUT
LLM_CALLS_PER_ATTEMPT = MAX_CHUNKS_PER_DOCUMENT + 1
ATTEMPT_BUDGET_SECONDS = (
    DOWNLOAD_TIMEOUT + LLM_CALLS_PER_ATTEMPT * (SUMMARY_TIMEOUT + CHUNK_DELAY_SECONDS)
)
BACKOFF_BUDGET_SECONDS = JOB_BACKOFF_BASE_SECONDS * (2 ** JOB_MAX_ATTEMPTS)
JOB_TIMEOUT = int(os.environ.get(
    "JOB_TIMEOUT", JOB_MAX_ATTEMPTS * ATTEMPT_BUDGET_SECONDS + BACKOFF_BUDGET_SECONDS + 60
))
JOB_RESULT_TTL = 3600
JOB_FAILURE_TTL = 24 * 3600
WORKER_CONCURRENCY = int(os.environ.get("WORKER_CONCURRENCY", 5))
WORKER_RATE_LIMIT = int(os.environ.get("WORKER_RATE_LIMIT", 10))  # Job starts per window
WORKER_RATE_WINDOW_SECONDS = 1

# Retention / cleanup settings
FILE_RETENTION_DAYS = float(os.environ.get("FILE_RETENTION_DAYS", 4))
CLEANUP_INTERVAL_HOURS = float(os.environ.get("CLEANUP_INTERVAL_HOURS", 6))
RUN_SWEEPER_IN_API = os.environ.get("RUN_SWEEPER_IN_API", "false").lower() == "true"  # Else run cleanup.run_cleanup separately


@dataclass
class ChunkingConfig:
    """Character based chunking configuration."""

    # Target characters per chunk
    chunk_size: int = 4000

    # Characters shared by consecutive chunks
    overlap: int = 200


# Default chunking configuration
DEFAULT_CHUNKING_CONFIG = ChunkingConfig()
