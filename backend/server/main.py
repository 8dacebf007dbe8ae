"""
Development server entry point.

    python -m server.main        (from backend/)
"""

from __future__ import annotations

import uvicorn
from dotenv import load_dotenv

from config import ServerConfig


def main() -> None:
    load_dotenv()
    config = ServerConfig.load_from_env()

    uvicorn.run(
        "server.asgi:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level,
        reload=config.env == "dev",
    )


if __name__ == "__main__":
    main()
