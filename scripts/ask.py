#!/usr/bin/env python3
"""
Ask the solver one question from the terminal and print the streamed answer.

Runs without the Gradio panel, through the same ChatHandler, against the
server at SOLVER_BASE_URL. Exits non-zero when no answer was committed.

    python scripts/ask.py --class class-9-10 --subject ssc-biology "What is photosynthesis?"
"""

import argparse
import sys

from ai_solver.chat.chat_handler import ChatHandler
from ai_solver.chat.session import ChatSession
from ai_solver.clients.solver_client import create_solver_client
from ai_solver.exceptions import ConfigurationError, SessionBusyError, ValidationError
from ai_solver.utils.logger import setup_logging


def format_stats_line(metadata: dict) -> str:
    """
    Format: [stats] chunks=X chars=Y dropped=Z first_chunk=W ms latency=V ms
    """
    return (
        f"[stats] chunks={metadata.get('delta_count', 0)} "
        f"chars={metadata.get('char_count', 0)} "
        f"dropped={metadata.get('dropped_frames', 0)} "
        f"first_chunk={metadata.get('time_to_first_chunk_ms', 0)} ms "
        f"latency={metadata.get('latency_ms', 0)} ms"
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask the AI solver a question.")
    parser.add_argument("prompt", type=str, help="The question to ask")
    parser.add_argument("--class", dest="class_id", required=True, help="Class id, e.g. class-9-10")
    parser.add_argument("--subject", dest="subject_id", required=True, help="Subject id, e.g. ssc-biology")
    parser.add_argument("--chapter", dest="chapter_id", default=None, help="Optional chapter id")
    parser.add_argument("--log-level", default="ERROR", help="Log level for stderr output")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging(level=args.log_level, log_file=None, log_format="text")

    try:
        chat_handler = ChatHandler(create_solver_client())
    except ConfigurationError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    session = ChatSession()
    print(f"User: {args.prompt}")
    print("Assistant: ", end="", flush=True)

    stats_metadata = None
    error = None
    try:
        for update in chat_handler.stream_response(
            session, args.class_id, args.subject_id, args.prompt, chapter_id=args.chapter_id
        ):
            if update.content:
                print(update.content, end="", flush=True)
            if update.error:
                error = update.error
            if update.metadata:
                stats_metadata = update.metadata
    except (ValidationError, SessionBusyError) as e:
        print()
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)

    print()
    if stats_metadata:
        print(format_stats_line(stats_metadata))

    if error:
        print(f"ERROR: {error}", file=sys.stderr)
        sys.exit(1)
    if len(session.messages) < 2:
        print("ERROR: No assistant response received", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
