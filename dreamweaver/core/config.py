"""
Process configuration, read from environment variables.
Vector backends are constructed once at startup through the factories below.
"""

import os
from pathlib import Path

from .. import __version__

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/dreams.db")

# Debug flag is a function so it stays dynamic
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformers|http
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-mpnet-base-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))
EMBED_MAX_CHARS = int(os.getenv("EMBED_MAX_CHARS", "8000"))
EMBED_API_URL = os.getenv("EMBED_API_URL", "https://ark.cn-beijing.volces.com/api/v3/embeddings/multimodal")
EMBED_API_KEY = os.getenv("EMBED_API_KEY")
EMBED_API_MODEL = os.getenv("EMBED_API_MODEL", "doubao-embedding-vision-250615")
EMBED_API_FORMAT = os.getenv("EMBED_API_FORMAT", "multimodal")  # multimodal|openai

# Vector store configuration
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "memory")  # memory|faiss|pinecone
PINECONE_API_KEY = os.getenv("PINECONE_API_KEY")
PINECONE_INDEX_NAME = os.getenv("PINECONE_INDEX_NAME", "dreamweaver")
PINECONE_INDEX_HOST = os.getenv("PINECONE_INDEX_HOST")
VECTOR_REQUEST_TIMEOUT_SEC = float(os.getenv("VECTOR_REQUEST_TIMEOUT_SEC", "30"))

# Namespaces
PUBLIC_NAMESPACE = "public"
USER_NAMESPACE_PREFIX = "user_"

# Similarity search
SIMILAR_MAX_LIMIT = int(os.getenv("SIMILAR_MAX_LIMIT", "20"))

# Drift detection and correction
CORRECTION_MODE = os.getenv("CORRECTION_MODE", "propose")  # off|propose|apply
DRIFT_RULESET = os.getenv("DRIFT_RULESET", "strict")  # strict|lenient

# API server
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Version string
VERSION = __version__


def user_namespace(owner_id: str) -> str:
    """Private namespace holding all of one user's dreams."""
    return f"{USER_NAMESPACE_PREFIX}{owner_id}"


def get_db_path() -> str:
    """Database path, re-read so tests can point at a temporary file."""
    return os.getenv("DB_PATH", DB_PATH)


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_admin_secret():
    """Shared secret for admin endpoints; None disables them."""
    return os.getenv("ADMIN_SYNC_SECRET") or None


def get_correction_mode():
    """Get correction mode (off|propose|apply)."""
    return os.getenv("CORRECTION_MODE", CORRECTION_MODE)


def get_drift_ruleset():
    """Get drift ruleset (strict|lenient)."""
    return os.getenv("DRIFT_RULESET", DRIFT_RULESET)


def get_vector_store():
    """Build the configured vector store implementation."""
    if VECTOR_PROVIDER == "memory":
        from ..vector.index import SimpleInMemoryVectorStore
        return SimpleInMemoryVectorStore()
    elif VECTOR_PROVIDER == "faiss":
        from ..vector.faiss_store import FaissVectorStore
        # Sized by the first embedding it receives
        return FaissVectorStore()
    elif VECTOR_PROVIDER == "pinecone":
        from ..vector.pinecone_store import PineconeVectorStore
        return PineconeVectorStore(
            api_key=PINECONE_API_KEY,
            index_name=PINECONE_INDEX_NAME,
            index_host=PINECONE_INDEX_HOST,
        )
    raise ValueError(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")


def get_embedding_provider():
    """Build the configured embedding provider implementation."""
    if EMBED_PROVIDER == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=EMBED_DIM)
    elif EMBED_PROVIDER == "sentence_transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    elif EMBED_PROVIDER == "http":
        from ..vector.embeddings import HttpEmbeddingProvider
        return HttpEmbeddingProvider(
            url=EMBED_API_URL,
            api_key=EMBED_API_KEY,
            model=EMBED_API_MODEL,
            request_format=EMBED_API_FORMAT,
            timeout=VECTOR_REQUEST_TIMEOUT_SEC,
        )
    raise ValueError(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")


def validate_vector_config():
    """Validate vector configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in ["hash", "sentence_transformers", "http"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_PROVIDER == "http":
        if not EMBED_API_KEY:
            issues.append("EMBED_PROVIDER=http requires EMBED_API_KEY")
        if EMBED_API_FORMAT not in ["multimodal", "openai"]:
            issues.append(f"Invalid EMBED_API_FORMAT: {EMBED_API_FORMAT}")

    if VECTOR_PROVIDER not in ["memory", "faiss", "pinecone"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if VECTOR_PROVIDER == "pinecone":
        if not PINECONE_API_KEY:
            issues.append("VECTOR_PROVIDER=pinecone requires PINECONE_API_KEY")
        if not PINECONE_INDEX_HOST and not PINECONE_INDEX_NAME:
            issues.append("VECTOR_PROVIDER=pinecone requires PINECONE_INDEX_NAME or PINECONE_INDEX_HOST")

    if get_correction_mode() not in ["off", "propose", "apply"]:
        issues.append(f"Invalid CORRECTION_MODE: {get_correction_mode()}")

    if get_drift_ruleset() not in ["strict", "lenient"]:
        issues.append(f"Invalid DRIFT_RULESET: {get_drift_ruleset()}")

    if VECTOR_REQUEST_TIMEOUT_SEC <= 0:
        issues.append("VECTOR_REQUEST_TIMEOUT_SEC must be > 0")

    return issues
