"""
Burnout Buddy -- Application Entry Point.

Starts the FastAPI server via uvicorn.

Usage:
    python main.py              # Development (reload when BUDDY_DEV_MODE=1)
    uvicorn main:app --host 0.0.0.0 --port 8000  # Production
"""

from __future__ import annotations

import uvicorn

from src.api import create_app
from src.config.settings import load_config
from src.lib.logging import setup_logging

config = load_config()
setup_logging(config)
app = create_app(config)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.dev_mode,
        log_level=config.log_level.lower(),
        log_config=None,
    )
