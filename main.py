"""
Calendiq — Entry Point.

Single entry point: `python main.py` serves the remote event API
(events + assistant endpoint) with uvicorn.
"""

import logging

import uvicorn

from calendiq.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from calendiq.api.server import create_app


def main() -> None:
    uvicorn.run(create_app(), host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
