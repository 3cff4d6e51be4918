"""Main Quart application for AskDocs."""
import logging
from typing import Awaitable, Callable, Literal, Optional

from pydantic import BaseModel, Field, ValidationError
from quart import Quart, jsonify, request
import structlog

from askdocs import config
from askdocs.errors import (
    AskDocsError,
    CompletionProviderError,
    DimensionMismatchError,
    DocumentLoadError,
    EmbeddingProviderError,
    EmptyContentError,
    InvalidArgumentError,
)
from askdocs.llm_client import OllamaClient, ollama_client
from askdocs.loaders import extract_pdf_text, fetch_url_content
from askdocs.rag.answer import AnswerPipeline, Completer, OllamaCompleter
from askdocs.rag.embeddings import Embedder, OllamaEmbedder
from askdocs.rag.ingest import IngestPipeline
from askdocs.rag.retriever import Retriever
from askdocs.rag.store import VectorStore

logging.basicConfig(level=config.LOG_LEVEL, format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

MAX_QUESTION_LENGTH = 2000

SOURCE_LABELS = {"pdf": "PDF upload", "text": "text input"}

ERROR_STATUS = (
    (InvalidArgumentError, 400),
    (EmptyContentError, 400),
    (DocumentLoadError, 422),
    (DimensionMismatchError, 409),
    (EmbeddingProviderError, 502),
    (CompletionProviderError, 502),
)


class IngestRequest(BaseModel):
    """Body of a document load request."""

    type: Literal["text", "url", "pdf"] = "text"
    content: Optional[str] = None
    url: Optional[str] = None


class ChatRequest(BaseModel):
    """Body of a question."""

    question: str = Field(..., min_length=1, max_length=MAX_QUESTION_LENGTH)


def _error_response(error: AskDocsError):
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return jsonify({"error": str(error)}), status
    return jsonify({"error": "Internal server error"}), 500


def create_app(
    embedder: Optional[Embedder] = None,
    completer: Optional[Completer] = None,
    vector_store: Optional[VectorStore] = None,
    client: Optional[OllamaClient] = None,
    url_loader: Callable[[str], Awaitable[str]] = fetch_url_content,
    persist: Optional[bool] = None,
) -> Quart:
    """Build the application and wire the RAG components.

    Args:
        embedder: Embedding capability (defaults to Ollama)
        completer: Completion capability (defaults to Ollama)
        vector_store: Store to use (defaults to a new store at config path)
        client: Ollama client used for readiness checks
        url_loader: Coroutine turning a URL into plain text
        persist: Load the store at startup and save after ingestion
            (default from config)
    """
    client = client or ollama_client
    embedder = embedder or OllamaEmbedder(client=client)
    completer = completer or OllamaCompleter(client=client)
    persist = config.PERSIST_VECTORS if persist is None else persist

    store = vector_store or VectorStore(
        embedder=embedder, dimension=config.EMBEDDING_DIMENSION
    )
    ingest_pipeline = IngestPipeline(store, persist=persist)
    retriever = Retriever(store, embedder)
    answer_pipeline = AnswerPipeline(retriever, completer)

    app = Quart(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES + 64 * 1024
    app.extensions["askdocs"] = {
        "vector_store": store,
        "ingest_pipeline": ingest_pipeline,
        "answer_pipeline": answer_pipeline,
    }

    @app.before_serving
    async def load_store():
        if persist:
            await store.load_or_init()

    @app.route("/api/load-documents", methods=["POST"])
    async def load_documents():
        """Ingest a document given as text, a URL or a PDF upload.

        Accepts JSON:
        {
            "type": "text" | "url" | "pdf",
            "content": "plain text",      // for type "text"
            "url": "https://..."          // for type "url"
        }

        or multipart form data with the same fields and a "file" part
        holding the PDF for type "pdf".

        Returns JSON:
        {
            "message": "Documents loaded successfully",
            "source": "url | PDF upload | text input",
            "chunks_created": 3
        }
        """
        try:
            upload = None
            if request.is_json:
                data = await request.get_json(silent=True)
                if data is None:
                    logger.warning("malformed_ingest_json")
                    return jsonify({"error": "Request body must be valid JSON"}), 400
            else:
                data = (await request.form).to_dict()
                upload = (await request.files).get("file")

            try:
                body = IngestRequest.model_validate(data)
            except ValidationError as e:
                logger.warning("invalid_ingest_request", errors=e.errors())
                return jsonify({"error": "Invalid request", "details": e.errors()}), 400

            if body.type == "pdf":
                if upload is None:
                    return jsonify({"error": 'A PDF file is required for type "pdf"'}), 400
                if upload.mimetype != "application/pdf":
                    return jsonify({"error": "Only PDF files are allowed"}), 400
                pdf_bytes = upload.read()
                if len(pdf_bytes) > config.MAX_UPLOAD_BYTES:
                    return jsonify({"error": "File too large"}), 413
                content = extract_pdf_text(pdf_bytes)
            elif body.type == "url":
                if not body.url:
                    return jsonify({"error": 'URL is required for type "url"'}), 400
                content = await url_loader(body.url)
            else:
                if not body.content:
                    return jsonify({"error": 'Content is required for type "text"'}), 400
                content = body.content

            logger.info(
                "ingest_request_received",
                source_type=body.type,
                content_length=len(content),
            )

            result = await ingest_pipeline.ingest(content, body.type, body.url)

            return jsonify({
                "message": "Documents loaded successfully",
                "source": SOURCE_LABELS.get(body.type, body.url),
                "chunks_created": result["chunks_created"],
            })

        except AskDocsError as e:
            logger.error("ingest_failed", error=str(e), error_type=type(e).__name__)
            return _error_response(e)
        except Exception as e:
            logger.error("ingest_endpoint_error", error=str(e), error_type=type(e).__name__)
            return jsonify({
                "error": "An error occurred processing your request. Please try again."
            }), 500

    @app.route("/api/chat", methods=["POST"])
    async def chat():
        """Answer a question from the loaded documents.

        Expects JSON body:
        {
            "question": "user question"
        }

        Returns JSON:
        {
            "answer": "assistant answer text",
            "sources": [{"source": ..., "content_preview": ..., "similarity": ...}]
        }
        """
        try:
            data = await request.get_json(silent=True)
            if not data or "question" not in data:
                logger.error("missing_question_field", data=data)
                return jsonify({"error": "Missing 'question' in request body"}), 400

            try:
                body = ChatRequest.model_validate(data)
            except ValidationError as e:
                return jsonify({"error": "Invalid request", "details": e.errors()}), 400

            logger.info(
                "chat_request_received",
                question_length=len(body.question),
                question_preview=body.question[:100],
            )

            result = await answer_pipeline.answer_with_sources(body.question)

            sources = [
                {
                    "source": r.source,
                    "content_preview": r.content[:200] + "..."
                    if len(r.content) > 200
                    else r.content,
                    "similarity": round(r.similarity, 3),
                }
                for r in result.sources
            ]

            logger.info(
                "chat_response_sent",
                response_length=len(result.text),
                num_sources=len(sources),
            )

            return jsonify({"answer": result.text, "sources": sources})

        except AskDocsError as e:
            logger.error("chat_failed", error=str(e), error_type=type(e).__name__)
            return _error_response(e)
        except Exception as e:
            logger.error("chat_endpoint_error", error=str(e), error_type=type(e).__name__)
            return jsonify({
                "error": "An error occurred processing your request. Please try again."
            }), 500

    @app.route("/api/stats")
    async def stats():
        """Report vector store statistics."""
        return jsonify(store.get_stats())

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check if app can serve requests.

        Checks:
        - Ollama service is reachable
        - Required models are available
        """
        checks = {
            "status": "healthy",
            "ollama": False,
            "models": False,
        }

        try:
            models = await client.list_models()
            checks["ollama"] = True

            missing = [
                m for m in (config.CHAT_MODEL, config.EMBEDDING_MODEL) if m not in models
            ]
            if missing:
                checks["status"] = "unhealthy"
                checks["error"] = f"Missing models: {', '.join(missing)}"
            else:
                checks["models"] = True

            status_code = 200 if checks["status"] == "healthy" else 503
            return jsonify(checks), status_code

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    async def too_large(error):
        """Handle oversized uploads."""
        return jsonify({"error": "File too large"}), 413

    @app.errorhandler(500)
    async def internal_error(error):
        """Handle 500 errors."""
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


app = create_app()


if __name__ == "__main__":
    # For development - use hypercorn in production
    app.run(host=config.HOST, port=config.PORT, debug=True)
