"""Context assembly and grounded answer generation."""
from dataclasses import dataclass
from typing import List, Optional, Protocol

import httpx
import structlog

from askdocs import config
from askdocs.errors import CompletionProviderError, InvalidArgumentError
from askdocs.llm_client import OllamaClient, ollama_client
from askdocs.rag.retriever import Retriever, validate_top_k
from askdocs.rag.store import RetrievalResult

logger = structlog.get_logger()

CONTEXT_SEPARATOR = "\n\n"
INSUFFICIENT_INFORMATION = "I do not have enough information to answer this question."

SYSTEM_INSTRUCTIONS = (
    "You are a helpful AI assistant. You are an expert at analyzing "
    "information and giving concise, correct answers.\n"
    "Use ONLY the information in the context to answer the question.\n"
    f'If you cannot find relevant information in the context, say "{INSUFFICIENT_INFORMATION}"\n'
    "Base your answer only on the given context and not on prior knowledge.\n"
    "Be specific and give direct answers when possible."
)


class Completer(Protocol):
    """Prompt to answer capability."""

    async def complete(self, prompt: str) -> str:
        ...


class OllamaCompleter:
    """Completer backed by an Ollama chat model."""

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        model: str = None,
        temperature: Optional[float] = None,
    ):
        self.client = client or ollama_client
        self.model = model or config.CHAT_MODEL
        self.temperature = (
            config.CHAT_TEMPERATURE if temperature is None else temperature
        )

    async def complete(self, prompt: str) -> str:
        """Generate an answer for an assembled prompt.

        Raises:
            CompletionProviderError: If the call fails or returns no text
        """
        try:
            data = await self.client.generate(
                prompt, model=self.model, temperature=self.temperature
            )
        except httpx.HTTPError as e:
            logger.error(
                "completion_failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CompletionProviderError(f"Failed to generate answer: {e}") from e

        answer = data.get("response")
        if answer is None:
            logger.error("empty_completion_response", model=self.model, response=data)
            raise CompletionProviderError("Empty response from LLM")
        return answer


def build_context(results: List[RetrievalResult], max_chars: int = 0) -> str:
    """Join retrieved chunk texts in ranked order.

    Args:
        results: Ranked retrieval results
        max_chars: Cut the joined context to this many characters (0 = no cap)
    """
    context = CONTEXT_SEPARATOR.join(r.content for r in results)
    if max_chars and len(context) > max_chars:
        logger.debug("context_truncated", original_chars=len(context), max_chars=max_chars)
        context = context[:max_chars]
    return context


def build_prompt(context: str, question: str, language: Optional[str] = None) -> str:
    """Build the grounding prompt: instructions, then context, then question."""
    instructions = SYSTEM_INSTRUCTIONS
    if language:
        instructions = f"{instructions}\nRespond in {language}."

    return (
        f"[SYSTEM]\n{instructions}\n\n"
        f"[CONTEXT]\n{context}\n\n"
        f"[QUESTION]\n{question}\n\n"
        f"[ANSWER]\n"
    )


@dataclass
class Answer:
    """An answer and the retrieved chunks it was grounded on."""

    text: str
    sources: List[RetrievalResult]


class AnswerPipeline:
    """Retrieve, assemble context and delegate to the completer."""

    def __init__(
        self,
        retriever: Retriever,
        completer: Completer,
        top_k: Optional[int] = None,
        max_context_chars: Optional[int] = None,
        language: Optional[str] = None,
    ):
        self.retriever = retriever
        self.completer = completer
        self.top_k = validate_top_k(config.RETRIEVAL_TOP_K if top_k is None else top_k)
        self.max_context_chars = (
            config.MAX_CONTEXT_CHARS if max_context_chars is None else max_context_chars
        )
        self.language = language if language is not None else config.ANSWER_LANGUAGE

    async def answer(self, question: str, top_k: Optional[int] = None) -> str:
        """Answer a question from the stored documents.

        Returns:
            The completer's output, verbatim
        """
        result = await self.answer_with_sources(question, top_k=top_k)
        return result.text

    async def answer_with_sources(
        self, question: str, top_k: Optional[int] = None
    ) -> Answer:
        """Answer a question and return the chunks used as context.

        Raises:
            InvalidArgumentError: If the question is blank or top_k is not positive
            EmbeddingProviderError: If the question cannot be embedded
            CompletionProviderError: If answer generation fails
        """
        if not question or not question.strip():
            raise InvalidArgumentError("Question must not be empty")

        results = await self.retriever.retrieve(
            question, top_k=self.top_k if top_k is None else top_k
        )
        context = build_context(results, self.max_context_chars)
        prompt = build_prompt(context, question, self.language)

        logger.info(
            "answer_prompt_built",
            num_chunks=len(results),
            context_length=len(context),
            prompt_length=len(prompt),
        )

        text = await self.completer.complete(prompt)

        logger.info("answer_generated", answer_length=len(text))

        return Answer(text=text, sources=results)
