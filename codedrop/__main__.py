"""Run the service with uvicorn: ``python -m codedrop``."""

import uvicorn

from codedrop.core.config import settings


def main() -> None:
    uvicorn.run(
        "codedrop.main:app",
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        timeout_keep_alive=60,
    )


if __name__ == "__main__":
    main()
