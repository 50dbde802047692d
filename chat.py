#!/usr/bin/env python3
"""Launch the AI solver chat panel."""

import os
import sys

from ai_solver.chat.chat_handler import ChatHandler
from ai_solver.clients.solver_client import create_solver_client
from ai_solver.config.settings import settings
from ai_solver.exceptions import ConfigurationError, TransportError
from ai_solver.ui.gradio_ui import create_chat_interface
from ai_solver.utils.logger import logger, setup_logging


def main():
    """Initialize and launch the chat interface."""
    log_format = os.getenv("LOG_FORMAT", "both")  # json, text, or both
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE", "logs/chat.log") or None,
        log_format=log_format,
        json_log_file=os.getenv("LOG_JSON_FILE", "logs/chat.jsonl"),
    )

    try:
        logger.info("Starting chat panel initialization")

        solver_client = create_solver_client()

        logger.info("Loading syllabus hierarchy")
        catalog = solver_client.get_syllabus()

        chat_handler = ChatHandler(solver_client)
        demo = create_chat_interface(chat_handler, catalog)
        logger.success("Gradio interface created")

        logger.info("=" * 60)
        logger.info(f"Solver endpoint: {settings.SOLVER_BASE_URL}{settings.SOLVER_ENDPOINT_PATH}")
        logger.info(f"Launching chat panel on {settings.UI_HOST}:{settings.UI_PORT}")
        logger.info("=" * 60)

        demo.launch(server_name=settings.UI_HOST, server_port=settings.UI_PORT, share=False)

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except TransportError as e:
        logger.error(f"Solver server unreachable at {settings.SOLVER_BASE_URL}: {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Error starting chat panel: {e}")
        logger.exception("Unexpected error during application startup")
        sys.exit(1)


if __name__ == "__main__":
    main()
