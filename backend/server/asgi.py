"""
ASGI entry point for the development game server.

    uvicorn server.asgi:app --port 8080     (from backend/)
"""

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()
