#!/usr/bin/env python3
"""
Development runner for the Navia coach API.
Starts uvicorn with auto-reload on the configured host and port.
"""

import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv()

from config.settings import get_settings


def main():
    settings = get_settings()

    print(f"""
   Navia Coach API (development)

   API Server:  http://{settings.api_host}:{settings.api_port}
   API Docs:    http://{settings.api_host}:{settings.api_port}/docs

   Press Ctrl+C to stop
    """)

    uvicorn.run(
        "src.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
