"""
Embeddings

Text embeddings from the Pinecone inference API, with a deterministic
hash embedding when Pinecone is unavailable.
"""

import logging
import math
from typing import List, Optional

from pinecone import Pinecone

from config.settings import EMBEDDING_DIMENSION, get_settings

logger = logging.getLogger(__name__)


def deterministic_embedding(text: str, dimension: int = EMBEDDING_DIMENSION) -> List[float]:
    """Unit-length vector derived only from the characters of the text"""
    vector = [0.0] * dimension

    for i, char in enumerate(text):
        code = ord(char)
        vector[(code * (i + 1)) % dimension] += math.sin(code * 0.1) * 0.1

    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        return vector
    return [v / magnitude for v in vector]


class Embedder:
    """
    Generates passage embeddings.

    Usage:
        embedder = Embedder()
        vector = embedder.embed("User: hi\\nAssistant: hello")
    """

    def __init__(self, client: Optional[Pinecone] = None, model: str = None):
        settings = get_settings()
        self.model = model or settings.pinecone_embed_model
        self.client = client

        if self.client is None and settings.pinecone_api_key:
            self.client = Pinecone(api_key=settings.pinecone_api_key)

    def embed(self, text: str) -> List[float]:
        return self.embed_many([text])[0]

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        if not self.client:
            logger.warning("Pinecone API key not configured, using fallback embeddings")
            return [deterministic_embedding(t) for t in texts]

        try:
            result = self.client.inference.embed(
                model=self.model,
                inputs=texts,
                parameters={"input_type": "passage", "truncate": "END"},
            )
            vectors = [list(item["values"]) for item in result]
            if len(vectors) != len(texts):
                raise ValueError(f"Expected {len(texts)} embeddings, got {len(vectors)}")
            return vectors
        except Exception as e:
            logger.error(f"Pinecone embedding error: {e}")
            logger.warning("Falling back to deterministic embeddings")
            return [deterministic_embedding(t) for t in texts]
