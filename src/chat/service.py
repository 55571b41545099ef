"""
Chat Service

Runs one coaching chat turn end to end:
1. Memory-recall detection
2. Persona detection (LLM through the queue, keyword fallback)
3. Context assembly
4. Reply generation (Groq, then Gemini) through the request queue
5. Persistence to Supabase and Pinecone
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import uuid

from config.settings import get_settings
from ..ai.context import AIContext, ContextAssembler
from ..ai.queue import AIRequestQueue, Provider
from ..llm.gemini_client import GeminiClient
from ..llm.groq_client import GroqClient
from ..personas.detector import PersonaDetection, PersonaDetector
from ..personas.prompts import (
    BREAKDOWN_HINT,
    MEMORY_QUERY_INSTRUCTIONS,
    MEMORY_RECALL_PROMPT,
    SYSTEM_PROMPT_BASE,
    get_persona,
)
from ..storage.supabase_store import ChatRecord, SupabaseStore
from ..vector.pinecone_store import ChatVectorStore
from .memory_query import get_memory_query_type, is_memory_recall_query
from .titles import generate_session_title

logger = logging.getLogger(__name__)

MEMORY_RECENT_LIMIT = 10
ERROR_REPLY = "I'm having trouble responding right now. Please try again in a moment."


class ChatServiceError(RuntimeError):
    """Neither LLM provider produced a reply"""


@dataclass
class ChatReply:
    message: str
    persona: str
    persona_icon: str
    category: str
    session_id: str
    session_title: Optional[str]
    provider: str
    needs_breakdown: bool = False
    memory_query_type: Optional[str] = None
    message_id: Optional[str] = None
    context_degraded: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


class ChatService:
    """
    Orchestrates a chat turn.

    Usage:
        service = ChatService(store, vector_store, queue, groq, gemini)
        reply = await service.respond("user_123", "I can't start my laundry")
    """

    def __init__(
        self,
        store: SupabaseStore,
        vector_store: Optional[ChatVectorStore],
        queue: AIRequestQueue,
        groq: GroqClient,
        gemini: GeminiClient,
        detector: Optional[PersonaDetector] = None,
        assembler: Optional[ContextAssembler] = None,
    ):
        self.store = store
        self.vector_store = vector_store
        self.queue = queue
        self.groq = groq
        self.gemini = gemini
        self.detector = detector or PersonaDetector(get_settings().persona_confidence_threshold)
        self.assembler = assembler or ContextAssembler(store, vector_store)

    async def respond(self, user_id: str, message: str, session_id: Optional[str] = None) -> ChatReply:
        """
        Answer a user message.

        Args:
            user_id: Authenticated user
            message: The user's message
            session_id: Existing chat session; a new one is started when omitted

        Returns:
            ChatReply

        Raises:
            ChatServiceError: both providers failed
        """
        is_first_message = session_id is None
        session_id = session_id or str(uuid.uuid4())
        session_title = generate_session_title(message) if is_first_message else None

        memory_type = get_memory_query_type(message) if is_memory_recall_query(message) else None

        detection = await self.detect_persona(message)
        persona = get_persona(detection.persona)
        logger.info(
            f"Persona for {user_id}: {detection.persona.value} "
            f"(confidence: {detection.confidence:.2f}, source: {detection.source})"
        )

        context = self.assembler.build_ai_context(
            user_id,
            message,
            category=None if memory_type else detection.category,
            recent_limit=MEMORY_RECENT_LIMIT if memory_type else None,
        )

        messages = [
            {"role": "system", "content": self.build_system_prompt(persona.system_prompt, context, detection, memory_type)},
            {"role": "user", "content": message},
        ]

        record = ChatRecord(
            user_id=user_id,
            message=message,
            response="",
            category=detection.category,
            persona=detection.persona.value,
            session_id=session_id,
            session_title=session_title,
            is_first_message=is_first_message,
            metadata={
                "confidence": detection.confidence,
                "needsBreakdown": detection.needs_breakdown,
                "memoryQueryType": memory_type,
            },
        )

        try:
            text, provider = await self.generate(messages)
        except ChatServiceError:
            record.response = ERROR_REPLY
            record.is_error = True
            self._store_row(record)
            raise

        record.response = text
        record.metadata["provider"] = provider
        record.pinecone_id = self._store_vector(user_id, message, text, detection)
        row = self._store_row(record)

        return ChatReply(
            message=text,
            persona=detection.persona.value,
            persona_icon=persona.icon,
            category=detection.category,
            session_id=session_id,
            session_title=session_title,
            provider=provider,
            needs_breakdown=detection.needs_breakdown,
            memory_query_type=memory_type,
            message_id=str(row["id"]) if row and row.get("id") is not None else None,
            context_degraded=context.degraded,
        )

    async def detect_persona(self, message: str) -> PersonaDetection:
        """LLM persona detection through the queue; keywords if Groq is unavailable"""
        if not self.groq.configured:
            return self.detector.detect(message)

        async def complete(messages: List[Dict[str, str]]) -> str:
            return await self.queue.add_request(
                lambda: self.groq.structured_output(messages), Provider.GROQ
            )

        try:
            return await self.detector.detect_with_llm(message, complete)
        except Exception as e:
            logger.warning(f"LLM persona detection failed, using keywords: {e}")
            return self.detector.detect(message)

    def build_system_prompt(
        self,
        persona_prompt: str,
        context: AIContext,
        detection: PersonaDetection,
        memory_type: Optional[str] = None,
    ) -> str:
        sections = [SYSTEM_PROMPT_BASE, persona_prompt]

        if memory_type:
            sections.append(MEMORY_RECALL_PROMPT)
            sections.append(MEMORY_QUERY_INSTRUCTIONS.get(memory_type, ""))
        elif detection.needs_breakdown:
            sections.append(BREAKDOWN_HINT)

        sections.append(context.to_prompt())
        return "\n\n".join(s for s in sections if s)

    async def generate(self, messages: List[Dict[str, str]]):
        """
        Generate a reply through the queue.

        Tries each configured provider in order, Groq first. With no
        provider configured the Groq client's mock reply is used.

        Returns:
            (text, provider name)
        """
        calls = []
        if self.groq.configured:
            calls.append((Provider.GROQ, lambda: self.groq.chat_completion(messages)))
        if self.gemini.configured:
            calls.append((Provider.GEMINI, lambda: self.gemini.chat(messages)))
        if not calls:
            logger.warning("No LLM provider configured, replying with mock text")
            calls.append((Provider.GROQ, lambda: self.groq.chat_completion(messages)))

        error = None
        for provider, execute in calls:
            try:
                text = await self.queue.add_request(execute, provider)
                return text, provider.value
            except Exception as e:
                logger.error(f"{provider.value} error: {e}")
                error = e

        raise ChatServiceError("All LLM providers failed") from error

    def _store_vector(self, user_id: str, message: str, response: str, detection: PersonaDetection) -> Optional[str]:
        if self.vector_store is None:
            return None
        try:
            return self.vector_store.store_chat_message(
                user_id,
                message,
                response,
                category=detection.category,
                persona=detection.persona.value,
                needsBreakdown=detection.needs_breakdown,
            )
        except Exception as e:
            logger.error(f"Failed to store chat vector: {e}")
            return None

    def _store_row(self, record: ChatRecord) -> Optional[Dict[str, Any]]:
        try:
            return self.store.store_chat_message(record)
        except Exception as e:
            logger.error(f"Failed to store chat message: {e}")
            return None
