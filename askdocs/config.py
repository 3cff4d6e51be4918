"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
VECTOR_STORE_PATH = Path(
    os.getenv("VECTOR_STORE_PATH", str(DATA_DIR / "vector_store.json"))
)
PERSIST_VECTORS = os.getenv("PERSIST_VECTORS", "true").lower() in ("1", "true", "yes")

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_TIMEOUT = float(os.getenv("OLLAMA_TIMEOUT", "60.0"))
CHAT_MODEL = os.getenv("CHAT_MODEL", "mistral:latest")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.1"))
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text:latest")
EMBEDDING_BATCH_SIZE = int(os.getenv("EMBEDDING_BATCH_SIZE", "10"))

# Fixed embedding dimension; unset means the first ingested batch decides
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "0")) or None

# RAG parameters (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "800"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "100"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "4"))
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "0"))  # 0 = no cap
ANSWER_LANGUAGE = os.getenv("ANSWER_LANGUAGE") or None

# Document loading
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
URL_FETCH_TIMEOUT = float(os.getenv("URL_FETCH_TIMEOUT", "15.0"))

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3003"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
