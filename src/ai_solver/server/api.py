"""FastAPI application serving the syllabus and the streaming solver."""

from typing import Any, Dict, Iterator, List

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from ai_solver.chat.engine import SolverChatEngine, build_solver_prompt
from ai_solver.clients.solver_client import REQUEST_ID_HEADER
from ai_solver.server.schemas import SolveRequest
from ai_solver.server.sse import SSE_MEDIA_TYPE, encode_chunk, encode_done, encode_error
from ai_solver.syllabus.catalog import SyllabusCatalog
from ai_solver.utils.logger import logger
from ai_solver.utils.structured_logging import CorrelationContext, log_error

STREAM_FAILURE_MESSAGE = "Failed to process AI request"


def create_app(engine: SolverChatEngine, catalog: SyllabusCatalog) -> FastAPI:
    """
    Build the solver API.

    Args:
        engine: Engine that streams answers
        catalog: Syllabus hierarchy used to resolve ids to names

    Returns:
        FastAPI application
    """
    app = FastAPI(title="AI Solver")

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/syllabus/hierarchy")
    def syllabus_hierarchy() -> List[Dict[str, Any]]:
        return catalog.to_payload()

    @app.post("/api/praggo/solve")
    def solve(body: SolveRequest, request: Request) -> StreamingResponse:
        """
        Stream an answer as event-stream frames.

        Each delta is sent as data: {"chunk": ...}, the stream ends with
        data: [DONE]. Failures after streaming started are sent as
        data: {"error": ...}.
        """
        if not body.is_complete():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

        syllabus_class = catalog.find_class(body.class_id)
        subject = catalog.find_subject(body.class_id, body.subject_id)
        if syllabus_class is None or subject is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class or subject not found")

        chapter = catalog.find_chapter(body.class_id, body.subject_id, body.chapter_id)
        system_prompt = build_solver_prompt(
            class_name=syllabus_class.display_name,
            subject_name=subject.display_name,
            chapter_title=chapter.title if chapter else None,
        )
        messages = engine.build_messages(system_prompt, body.history(), body.prompt.strip())
        correlation_id = request.headers.get(REQUEST_ID_HEADER)

        def frames() -> Iterator[str]:
            with CorrelationContext(correlation_id):
                logger.info(
                    f"Solving for class={body.class_id} subject={body.subject_id} "
                    f"chapter={chapter.id if chapter else None}"
                )
                try:
                    for update in engine.stream(messages):
                        if update.content:
                            yield encode_chunk(update.content)
                    yield encode_done()
                except Exception as e:
                    log_error(error_type="engine_error", error_message=str(e))
                    yield encode_error(str(e) or STREAM_FAILURE_MESSAGE)

        return StreamingResponse(
            frames(),
            media_type=SSE_MEDIA_TYPE,
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    return app
