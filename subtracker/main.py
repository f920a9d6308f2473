"""FastAPI ASGI application entrypoint."""

import uvicorn

from .core.app_factory import create_application
from .core.config import Settings

app = create_application()


def run() -> None:
    """Serve the application with Uvicorn on the configured host and port."""
    settings = Settings()
    uvicorn.run(app, host=settings.server_host, port=settings.server_port, log_level=settings.log_level.lower())


__all__ = ("app", "run")
