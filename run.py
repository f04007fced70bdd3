"""Run the AI provider gateway with uvicorn."""

import logging

import uvicorn

from ai_gateway.config import settings

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("ai_gateway.main:app", host=settings.app_host, port=settings.app_port)
