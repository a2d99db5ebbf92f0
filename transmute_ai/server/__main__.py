"""Run the API server with uvicorn: ``python -m transmute_ai.server``."""

import uvicorn

from transmute_ai.core.config import settings


def run() -> None:
    uvicorn.run(
        "transmute_ai.server.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
