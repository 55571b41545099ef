"""
Pinecone Chat Store

Stores conversation turns as vectors and retrieves semantically similar
past turns for context assembly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import time

from pinecone import Pinecone

from config.settings import get_settings
from .embeddings import Embedder

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


@dataclass
class StoredChat:
    """A past conversation turn returned by vector search"""
    user_id: str
    message: str
    response: str
    category: str
    persona: str
    timestamp: int
    score: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)


class ChatVectorStore:
    """
    Chat history in a Pinecone index.

    Usage:
        store = ChatVectorStore()
        store.store_chat_message("user_123", "hi", "hello", category="daily_task", persona="daily_tasks")
        hits = store.retrieve_relevant_context("user_123", "what did I say?", limit=3)
    """

    def __init__(self, index=None, embedder: Optional[Embedder] = None, relevance_threshold: float = None):
        """
        Initialize the store.

        Args:
            index: Pinecone index handle (defaults to settings.pinecone_index_name)
            embedder: Embedding generator
            relevance_threshold: Minimum score for a hit to count as relevant
        """
        settings = get_settings()
        self.relevance_threshold = (
            settings.relevance_threshold if relevance_threshold is None else relevance_threshold
        )

        if index is None:
            if not settings.pinecone_api_key or not settings.pinecone_index_name:
                raise ValueError("PINECONE_API_KEY / PINECONE_INDEX_NAME not configured")
            client = Pinecone(api_key=settings.pinecone_api_key)
            index = client.Index(settings.pinecone_index_name)
            embedder = embedder or Embedder(client=client)
            logger.info(f"Connected to Pinecone index {settings.pinecone_index_name}")

        self.index = index
        self.embedder = embedder or Embedder()

    @staticmethod
    def chat_id(user_id: str, timestamp: int) -> str:
        return f"chat_{user_id}_{timestamp}"

    def store_chat_message(
        self,
        user_id: str,
        message: str,
        response: str,
        category: str,
        persona: str,
        **extra_metadata,
    ) -> str:
        """
        Embed and upsert one conversation turn.

        Returns:
            The vector id
        """
        timestamp = int(time.time() * 1000)
        vector = self.embedder.embed(f"User: {message}\nAssistant: {response}")
        vector_id = self.chat_id(user_id, timestamp)

        metadata = {
            "userId": user_id,
            "category": category,
            "persona": persona,
            "timestamp": timestamp,
            "messagePreview": message[:PREVIEW_LENGTH],
            "responsePreview": response[:PREVIEW_LENGTH],
            "fullMessage": message,
            "fullResponse": response,
        }
        # Pinecone rejects null metadata values
        metadata.update({k: v for k, v in extra_metadata.items() if v is not None and k not in metadata})

        self.index.upsert(vectors=[{"id": vector_id, "values": vector, "metadata": metadata}])
        logger.info(f"Stored chat message for user {user_id} in category {category}")
        return vector_id

    def retrieve_relevant_context(
        self,
        user_id: str,
        query: str,
        category: Optional[str] = None,
        limit: int = 5,
    ) -> List[StoredChat]:
        """
        Past turns similar to the query, best first.

        Only hits scoring above the relevance threshold are returned.
        Errors are logged and produce an empty list.
        """
        try:
            vector = self.embedder.embed(query)

            metadata_filter: Dict[str, Any] = {"userId": {"$eq": user_id}}
            if category:
                metadata_filter["category"] = {"$eq": category}

            result = self.index.query(
                vector=vector,
                top_k=limit,
                include_metadata=True,
                filter=metadata_filter,
            )
        except Exception as e:
            logger.error(f"Error retrieving relevant context: {e}")
            return []

        hits = []
        for match in self._matches(result):
            score = self._get(match, "score") or 0.0
            metadata = self._get(match, "metadata")
            if score <= self.relevance_threshold or not metadata:
                continue
            hits.append(StoredChat(
                user_id=metadata.get("userId", user_id),
                message=metadata.get("fullMessage", ""),
                response=metadata.get("fullResponse", ""),
                category=metadata.get("category", ""),
                persona=metadata.get("persona", ""),
                timestamp=int(metadata.get("timestamp", 0)),
                score=float(score),
                metadata=dict(metadata),
            ))
        return hits

    @staticmethod
    def _matches(result) -> list:
        if isinstance(result, dict):
            return result.get("matches", []) or []
        return getattr(result, "matches", []) or []

    @staticmethod
    def _get(match, key):
        if isinstance(match, dict):
            return match.get(key)
        return getattr(match, key, None)
