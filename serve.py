#!/usr/bin/env python3
"""Launch the AI solver API server."""

import os
import sys

import uvicorn

from ai_solver.chat.engine import SolverChatEngine
from ai_solver.clients.llm_client import create_llm_client
from ai_solver.config.settings import settings
from ai_solver.exceptions import ConfigurationError
from ai_solver.server.api import create_app
from ai_solver.syllabus.catalog import load_catalog
from ai_solver.utils.logger import logger, setup_logging


def main():
    """Initialize the engine and serve the API."""
    log_format = os.getenv("LOG_FORMAT", "both")
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE", "logs/server.log") or None,
        log_format=log_format,
        json_log_file=os.getenv("LOG_JSON_FILE", "logs/server.jsonl"),
    )

    try:
        logger.info("Starting solver server initialization")
        engine = SolverChatEngine(create_llm_client())
        catalog = load_catalog(settings.SYLLABUS_PATH)
        app = create_app(engine, catalog)
        logger.success("Solver API created")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Failed to load syllabus from {settings.SYLLABUS_PATH}: {e}")
        sys.exit(1)

    logger.info(f"Model: {settings.MODEL_NAME} (deployment {settings.AZURE_OPENAI_DEPLOYMENT})")
    logger.info(f"Serving on {settings.SERVER_HOST}:{settings.SERVER_PORT}")
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)


if __name__ == "__main__":
    main()
