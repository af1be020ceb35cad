"""Answer generation over a langchain chat model."""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_openai import ChatOpenAI

from art_rag.core.config import Settings
from art_rag.core.errors import GenerationError
from art_rag.core.logging import get_logger
from art_rag.core.prompts import CONNECTION_TEST_PROMPT, get_answer_prompt
from art_rag.models.query import GenerationResult, RetrievedDocument

logger = get_logger(__name__)

NO_DOCUMENTS_CONTEXT = "No relevant documents found."


def create_chat_model(settings: Settings, model: Optional[str] = None) -> BaseChatModel:
    """Create the chat model served by Ollama's OpenAI-compatible endpoint."""
    model_name = model or settings.llm_model
    logger.info(f"Creating chat model {model_name} at {settings.llm_base_url}")
    return ChatOpenAI(
        model=model_name,
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout,
        max_retries=1,
    )


def format_document(index: int, metadata: Dict[str, Any], content: str) -> str:
    text = metadata.get("text") or content or metadata.get("content") or "No content available"
    return (
        f"Document {index}:\n"
        f"- Title: {metadata.get('title') or 'Unknown'}\n"
        f"- Artist: {metadata.get('artist') or 'Unknown'}\n"
        f"- Accession Number: {metadata.get('accession_number') or 'Unknown'}\n"
        f"- Medium: {metadata.get('medium') or 'Unknown'}\n"
        f"- Period: {metadata.get('period') or 'Unknown'}\n"
        f"- Content: {text}\n"
        f"---"
    )


class AnswerGenerator:
    """Turns a context string and a question into an answer."""

    def __init__(self, llm: BaseChatModel, model_name: str):
        self.llm = llm
        self.model_name = model_name
        self.prompt = get_answer_prompt()
        self.chain = self.prompt | self.llm | StrOutputParser()

    def format_context(self, documents: Sequence[RetrievedDocument]) -> str:
        if not documents:
            return NO_DOCUMENTS_CONTEXT

        return "\n\n".join(
            format_document(index, document.metadata, document.content)
            for index, document in enumerate(documents, start=1)
        )

    async def generate_answer(self, context: str, question: str) -> GenerationResult:
        """Run the prompt through the model.

        Raises:
            GenerationError: If the model call fails.
        """
        start = time.perf_counter()
        try:
            answer = await self.chain.ainvoke({"context": context, "question": question})
        except Exception as e:
            logger.error(f"LLM generation failed: {e}")
            raise GenerationError(f"LLM generation failed: {e}", model=self.model_name) from e

        return GenerationResult(
            answer=answer.strip(),
            processing_time=(time.perf_counter() - start) * 1000,
            model=self.model_name,
            timestamp=datetime.now(timezone.utc),
        )

    async def test_connection(self) -> bool:
        """Liveness probe; never raises."""
        try:
            await self.llm.ainvoke(CONNECTION_TEST_PROMPT)
            return True
        except Exception as e:
            logger.warning(f"LLM connection test failed: {e}")
            return False
