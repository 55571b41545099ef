"""
FastAPI Application

Main entry point for the Navia coach API.
"""

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional
import logging

from config.settings import CHAT_CATEGORIES, get_settings
from ..ai.context import ContextAssembler, active_flags
from ..ai.queue import AIRequestQueue, get_ai_queue
from ..chat.breakdown import BreakdownGenerator
from ..chat.service import ChatService, ChatServiceError
from ..llm.gemini_client import GeminiClient
from ..llm.groq_client import GroqClient
from ..storage.supabase_store import MessageNotFoundError, SupabaseStore
from ..vector.pinecone_store import ChatVectorStore

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Navia Coach API",
    description="AI executive-function coaching for neurodivergent young adults",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global instances
store = None
vector_store = None
assembler = None
chat_service = None
breakdown_generator = None


# ====================
# Request/Response Models
# ====================

class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    session_id: Optional[str] = None


class ChatResponse(BaseModel):
    message: str
    persona: str
    persona_icon: str
    category: str
    session_id: str
    session_title: Optional[str] = None
    message_id: Optional[str] = None
    needs_breakdown: bool = False
    memory_query_type: Optional[str] = None
    provider: str


class FeedbackRequest(BaseModel):
    messageId: str = Field(min_length=1)
    feedback: Optional[bool] = None


class SessionTitleRequest(BaseModel):
    title: str = Field(min_length=1, max_length=100)


class TaskBreakdownRequest(BaseModel):
    task: str = Field(min_length=1)
    context: Optional[str] = None
    support_level: int = Field(default=3, ge=1, le=5)
    energy_level: Optional[int] = Field(default=None, ge=1, le=10)
    check_complexity: bool = False


# ====================
# Errors
# ====================

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    """Malformed request bodies and params are a 400, not FastAPI's default 422"""
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())})


# ====================
# Startup/Shutdown
# ====================

@app.on_event("startup")
async def startup():
    """Initialize storage and services on startup"""
    global store, vector_store, assembler, chat_service, breakdown_generator

    logger.info("Starting Navia Coach API...")

    try:
        store = SupabaseStore()
        logger.info("✓ Supabase store initialized")
    except Exception as e:
        logger.warning(f"Supabase unavailable: {e}")
        store = None

    try:
        vector_store = ChatVectorStore()
        logger.info("✓ Pinecone vector store initialized")
    except Exception as e:
        logger.warning(f"Pinecone unavailable, semantic context disabled: {e}")
        vector_store = None

    groq = GroqClient()
    gemini = GeminiClient()
    logger.info(f"✓ LLM clients initialized (groq: {groq.configured}, gemini: {gemini.configured})")

    breakdown_generator = BreakdownGenerator(groq, get_ai_queue())

    if store is not None:
        assembler = ContextAssembler(store, vector_store)
        chat_service = ChatService(store, vector_store, get_ai_queue(), groq, gemini, assembler=assembler)
        logger.info("✓ Chat service initialized")

    logger.info("Navia Coach API ready!")


# ====================
# Dependencies
# ====================

async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """User id forwarded by the identity provider in front of this service"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def get_store() -> SupabaseStore:
    if store is None:
        raise HTTPException(status_code=503, detail="Storage not configured")
    return store


def get_assembler() -> ContextAssembler:
    if assembler is None:
        raise HTTPException(status_code=503, detail="Storage not configured")
    return assembler


def get_chat_service() -> ChatService:
    if chat_service is None:
        raise HTTPException(status_code=503, detail="Chat service not configured")
    return chat_service


def get_queue() -> AIRequestQueue:
    return get_ai_queue()


def get_optional_store() -> Optional[SupabaseStore]:
    return store


def get_breakdown_generator() -> BreakdownGenerator:
    if breakdown_generator is None:
        raise HTTPException(status_code=503, detail="Task breakdown not configured")
    return breakdown_generator


# ====================
# API Endpoints
# ====================

@app.get("/")
async def root():
    """API root"""
    return {
        "name": "Navia Coach API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """Health check"""
    settings = get_settings()
    return {
        "status": "healthy",
        "storage": store is not None,
        "vector_search": vector_store is not None,
        "groq": bool(settings.groq_api_key),
        "gemini": bool(settings.gemini_api_key),
    }


@app.post("/api/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    """
    Main chat endpoint.

    Detects the persona, assembles context and returns the coach's reply.
    """
    try:
        reply = await service.respond(user_id, request.message, request.session_id)
        return ChatResponse(
            message=reply.message,
            persona=reply.persona,
            persona_icon=reply.persona_icon,
            category=reply.category,
            session_id=reply.session_id,
            session_title=reply.session_title,
            message_id=reply.message_id,
            needs_breakdown=reply.needs_breakdown,
            memory_query_type=reply.memory_query_type,
            provider=reply.provider,
        )
    except ChatServiceError as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process chat message")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process chat message")


@app.get("/api/chat/history")
async def chat_history(
    limit: int = Query(default=50, ge=1, le=200),
    category: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: SupabaseStore = Depends(get_store),
):
    """
    Chat history and statistics for the current user.
    """
    if category is not None and category not in CHAT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"category must be one of {CHAT_CATEGORIES}")

    try:
        history = db.get_chat_history(user_id, limit, category)
        stats = db.get_chat_statistics(user_id)
        return {
            "success": True,
            "chat_history": history,
            "stats": stats,
            "count": len(history),
        }
    except Exception as e:
        logger.error(f"Chat history retrieval error: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve chat history")


@app.get("/api/chat/sessions")
async def chat_sessions(
    limit: int = Query(default=10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: SupabaseStore = Depends(get_store),
):
    """
    Chat sessions for the sidebar.
    """
    try:
        sessions = db.get_chat_sessions(user_id, limit)
        logger.info(f"Found {len(sessions)} sessions for user {user_id}")
        return {
            "success": True,
            "sessions": [s.model_dump() for s in sessions],
            "count": len(sessions),
        }
    except Exception as e:
        logger.error(f"Chat sessions retrieval error: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve chat sessions")


@app.get("/api/chat/sessions/{session_id}")
async def session_messages(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db: SupabaseStore = Depends(get_store),
):
    """
    All messages in one session, oldest first.
    """
    try:
        messages = db.get_session_messages(user_id, session_id)
    except Exception as e:
        logger.error(f"Session messages retrieval error: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve session messages")

    if not messages:
        raise HTTPException(status_code=404, detail="Session not found")

    return {
        "success": True,
        "session_id": session_id,
        "messages": messages,
        "count": len(messages),
    }


@app.patch("/api/chat/sessions/{session_id}")
async def rename_session(
    session_id: str,
    request: SessionTitleRequest,
    user_id: str = Depends(get_current_user_id),
    db: SupabaseStore = Depends(get_store),
):
    """
    Rename a chat session.
    """
    try:
        db.update_session_title(user_id, session_id, request.title.strip())
        return {"success": True, "session_id": session_id, "session_title": request.title.strip()}
    except Exception as e:
        logger.error(f"Session rename error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update session title")


@app.post("/api/chat/feedback")
async def chat_feedback(
    request: FeedbackRequest,
    user_id: str = Depends(get_current_user_id),
    db: SupabaseStore = Depends(get_store),
):
    """
    Thumbs up (true), thumbs down (false) or clear (null) on a reply.

    Locked after two selections.
    """
    try:
        result = db.update_chat_message_feedback(request.messageId, user_id, request.feedback)
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    except Exception as e:
        logger.error(f"Feedback API error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update feedback")

    if not result.success:
        return JSONResponse(
            status_code=403,
            content={
                "success": False,
                "locked": result.locked,
                "message": result.message,
                "toggle_count": result.toggle_count,
            },
        )

    return {
        "success": True,
        "feedback": result.feedback,
        "locked": result.locked,
        "toggle_count": result.toggle_count,
    }


@app.post("/api/features/task-breakdown")
async def task_breakdown(
    request: TaskBreakdownRequest,
    user_id: str = Depends(get_current_user_id),
    generator: BreakdownGenerator = Depends(get_breakdown_generator),
    db: Optional[SupabaseStore] = Depends(get_optional_store),
):
    """
    Break a task into main steps with concrete sub-steps.

    With check_complexity, simple tasks are answered without a plan.
    """
    task = request.task.strip()
    if not task:
        raise HTTPException(status_code=400, detail="Task is required")

    ef_challenges = []
    if db is not None:
        try:
            profile = db.get_user_profile(user_id) or {}
            ef_challenges = active_flags(profile.get("ef_challenges"))
        except Exception as e:
            logger.warning(f"Profile lookup failed, breaking down without EF profile: {e}")

    try:
        if request.check_complexity:
            analysis = await generator.analyze_complexity(task, request.context)
            if not analysis.needs_breakdown:
                return {
                    "success": True,
                    "task": task,
                    "needs_breakdown": False,
                    "complexity": analysis.complexity,
                    "reasoning": analysis.reasoning,
                    "message": "This task looks straightforward - you can tackle it directly!",
                }

        breakdown = await generator.generate(
            task,
            context=request.context,
            ef_challenges=ef_challenges,
            support_level=request.support_level,
            energy_level=request.energy_level,
        )
    except Exception as e:
        logger.error(f"Task breakdown error: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate breakdown")

    return {
        "success": True,
        "task": task,
        "needs_breakdown": True,
        "breakdown": breakdown.model_dump(),
    }


@app.get("/api/ai/queue")
async def queue_status(
    user_id: str = Depends(get_current_user_id),
    queue: AIRequestQueue = Depends(get_queue),
):
    """
    Current AI request queue status.
    """
    return queue.get_status().model_dump()


@app.get("/api/user-profile")
async def user_profile(
    user_id: str = Depends(get_current_user_id),
    db: SupabaseStore = Depends(get_store),
    context: ContextAssembler = Depends(get_assembler),
):
    """
    Profile row, the summary the coach sees, and whether onboarding is complete.
    """
    try:
        profile = db.get_user_profile(user_id)
    except Exception as e:
        logger.error(f"Get profile error: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve profile")

    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")

    return {
        "profile": profile,
        "summary": context.get_minimal_context(user_id),
        "has_context": context.has_user_context(user_id),
    }
