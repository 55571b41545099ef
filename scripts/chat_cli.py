#!/usr/bin/env python3
"""
Chat CLI

Tries persona detection and memory-recall routing on sample messages, or
runs full chat turns against the configured services.

Usage:
    # Classify the sample messages
    python scripts/chat_cli.py

    # Classify one message
    python scripts/chat_cli.py --message "I can't start my laundry"

    # Chat with the coach (needs Supabase; Groq/Gemini keys optional)
    python scripts/chat_cli.py --interactive --user user_123
"""

import sys
import asyncio
import argparse
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.markdown import Markdown
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config.settings import get_settings
from src.ai.context import ContextAssembler
from src.ai.queue import get_ai_queue
from src.chat.memory_query import get_memory_query_type
from src.chat.service import ChatService, ChatServiceError
from src.chat.titles import generate_session_title
from src.llm.gemini_client import GeminiClient
from src.llm.groq_client import GroqClient
from src.personas.detector import PersonaDetector
from src.storage.supabase_store import SupabaseStore
from src.vector.pinecone_store import ChatVectorStore

console = Console()


SAMPLE_MESSAGES = [
    {"message": "How do I tailor my resume for a UX internship?", "expected": "career"},
    {"message": "I have an interview Friday and I'm freaking out", "expected": "career"},
    {"message": "My credit card bill is due and I haven't looked at it", "expected": "finance"},
    {"message": "Can you help me make a budget for groceries?", "expected": "finance"},
    {"message": "My room is a disaster and I don't know where to start", "expected": "daily_tasks"},
    {"message": "I keep forgetting to take my meds in the morning", "expected": "daily_tasks"},
    {"message": "What am I forgetting?", "expected": "daily_tasks"},
]


def main():
    parser = argparse.ArgumentParser(description="Navia chat tester")
    parser.add_argument("--message", help="Classify a specific message")
    parser.add_argument("--interactive", "-i", action="store_true", help="Chat with the coach")
    parser.add_argument("--user", default="cli_user", help="User id for interactive chat")

    args = parser.parse_args()

    console.print("\n[bold]Navia - Chat Tester[/bold]\n")

    detector = PersonaDetector(get_settings().persona_confidence_threshold)

    if args.interactive:
        service = build_service()
        if service is None:
            sys.exit(1)
        asyncio.run(interactive_mode(service, args.user))
    elif args.message:
        classify_message(args.message, detector)
    else:
        run_samples(detector)


def build_service():
    """Wire the chat service from settings"""
    try:
        store = SupabaseStore()
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        return None

    try:
        vector_store = ChatVectorStore()
    except ValueError as e:
        console.print(f"[yellow]Semantic context disabled: {e}[/]")
        vector_store = None

    groq = GroqClient()
    gemini = GeminiClient()
    if not groq.configured and not gemini.configured:
        console.print("[yellow]No LLM keys configured, replies will be mocked[/]")

    assembler = ContextAssembler(store, vector_store)
    return ChatService(store, vector_store, get_ai_queue(), groq, gemini, assembler=assembler)


def classify_message(message: str, detector: PersonaDetector):
    """Show how a single message is routed"""
    console.print(Panel(message, title="Message", border_style="blue"))

    detection = detector.detect(message)
    console.print(f"\n[bold]Persona:[/]")
    console.print(f"  Persona: [cyan]{detection.persona.value}[/]")
    console.print(f"  Category: [cyan]{detection.category}[/]")
    console.print(f"  Confidence: [cyan]{detection.confidence:.2f}[/]")
    console.print(f"  Needs breakdown: [cyan]{detection.needs_breakdown}[/]")
    console.print(f"  Multi-domain: [cyan]{detector.is_multi_domain_query(message)}[/]")

    console.print(f"\n[bold]Routing:[/]")
    console.print(f"  Memory query: [cyan]{get_memory_query_type(message) or 'none'}[/]")
    console.print(f"  Session title: [cyan]{generate_session_title(message)}[/]")
    console.print()


def run_samples(detector: PersonaDetector):
    """Classify all sample messages"""
    console.print(f"[bold]Classifying {len(SAMPLE_MESSAGES)} sample messages...[/]\n")

    passed = 0
    for i, sample in enumerate(SAMPLE_MESSAGES, 1):
        message = sample["message"]
        console.print(f"[dim]Sample {i}/{len(SAMPLE_MESSAGES)}:[/] {message}")

        detection = detector.detect(message)
        ok = detection.persona.value == sample["expected"]
        passed += ok

        status = "✓" if ok else "✗"
        color = "green" if ok else "red"
        memory = get_memory_query_type(message)
        console.print(
            f"  [{color}]{status}[/] Persona: {detection.persona.value} "
            f"({detection.confidence:.2f}), memory: {memory or 'none'}"
        )

    console.print(f"\n[bold]Results: {passed}/{len(SAMPLE_MESSAGES)} matched[/]")


async def interactive_mode(service: ChatService, user_id: str):
    """Chat loop against the live services"""
    console.print("[bold]Interactive Mode[/] - Type 'quit' to exit\n")

    session_id = None
    while True:
        try:
            message = console.input("[bold blue]You>[/] ")

            if message.lower() in ['quit', 'exit', 'q']:
                break

            if not message.strip():
                continue

            try:
                reply = await service.respond(user_id, message, session_id)
            except ChatServiceError as e:
                console.print(f"[red]{e}[/]")
                continue

            session_id = reply.session_id
            title = f"{reply.persona_icon} {reply.persona} via {reply.provider}"
            console.print(Panel(Markdown(reply.message), title=title, border_style="green"))

        except KeyboardInterrupt:
            console.print("\n")
            break

    console.print("Goodbye!")


if __name__ == "__main__":
    main()
