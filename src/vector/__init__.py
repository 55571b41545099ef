"""
Vector module - Pinecone chat history and embeddings
"""

from .embeddings import Embedder, deterministic_embedding
from .pinecone_store import ChatVectorStore, StoredChat

__all__ = ["Embedder", "deterministic_embedding", "ChatVectorStore", "StoredChat"]
