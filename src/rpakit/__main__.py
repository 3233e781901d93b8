"""Entry point for the standalone API server."""

import uvicorn

from rpakit.config import settings
from rpakit.main import app


def main() -> None:
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
