"""Entry point for the TreinUp functions service."""

import logging

from treinup.config import get_settings
from treinup.functions.app import create_app

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "treinup.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
