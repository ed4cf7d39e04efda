"""Solwatch - Main application entry point."""

import uvicorn

from solwatch.api.app import create_app
from solwatch.config import get_settings

app = create_app()


def main() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "solwatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
