"""
Configuration management for the Navia coach API
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Groq (primary LLM)
    groq_api_key: Optional[str] = Field(default=None)
    groq_model: str = Field(default="llama-3.1-70b-versatile")

    # Gemini (secondary LLM)
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: str = Field(default="gemini-1.5-flash")

    # Pinecone
    pinecone_api_key: Optional[str] = Field(default=None)
    pinecone_index_name: Optional[str] = Field(default=None)
    pinecone_embed_model: str = Field(default="multilingual-e5-large")

    # Supabase
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # Request queue (seconds between calls per provider)
    groq_delay_seconds: float = Field(default=1.0)
    gemini_delay_seconds: float = Field(default=0.5)

    # Context assembly
    recent_message_limit: int = Field(default=5)
    relevant_context_limit: int = Field(default=3)
    relevance_threshold: float = Field(default=0.7)
    persona_confidence_threshold: float = Field(default=0.6)

    # Server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    debug: bool = Field(default=True)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Chat categories stored alongside each conversation turn
CHAT_CATEGORIES = ["finance", "career", "daily_task"]

EMBEDDING_DIMENSION = 1024
