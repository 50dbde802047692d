"""Shared pytest fixtures for all tests."""

import json
from typing import Iterable, Iterator, List
from unittest.mock import Mock

import httpx
import pytest

from ai_solver.chat.chat_handler import ChatHandler
from ai_solver.chat.models import Message, Role
from ai_solver.chat.session import ChatSession
from ai_solver.clients.solver_client import SolverClient
from ai_solver.syllabus.catalog import SyllabusCatalog


def sse_frames(*payloads: str) -> bytes:
    """Encode payloads as a complete event-stream body."""
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode("utf-8")


def chunk_json(text: str) -> str:
    return json.dumps({"chunk": text}, ensure_ascii=False)


def split_every(body: bytes, size: int) -> List[bytes]:
    """Split bytes into pieces of `size`, ignoring character and frame boundaries."""
    return [body[i:i + size] for i in range(0, len(body), size)]


@pytest.fixture
def session():
    """Create an empty chat session."""
    return ChatSession()


@pytest.fixture
def sent_requests():
    """Requests seen by the mock transport."""
    return []


@pytest.fixture
def make_solver_client(sent_requests):
    """
    Factory for a SolverClient backed by httpx.MockTransport.

    The response body is delivered in exactly the chunks given.
    """

    def factory(
        chunks: Iterable[bytes] = (),
        status_code: int = 200,
        json_body=None,
        error: Exception | None = None,
    ) -> SolverClient:
        def handler(request: httpx.Request) -> httpx.Response:
            sent_requests.append(request)
            if error is not None:
                raise error
            if json_body is not None:
                return httpx.Response(status_code, json=json_body)
            return httpx.Response(
                status_code,
                content=chunks if isinstance(chunks, Iterator) else iter(list(chunks)),
                headers={"Content-Type": "text/event-stream"},
            )

        http_client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://solver.test")
        return SolverClient(http_client=http_client)

    return factory


@pytest.fixture
def make_chat_handler(make_solver_client):
    """Factory for a ChatHandler whose transport replays the given chunks."""

    def factory(chunks: Iterable[bytes] = (), **kwargs) -> ChatHandler:
        return ChatHandler(make_solver_client(chunks, **kwargs))

    return factory


@pytest.fixture
def syllabus_payload():
    """A small hierarchy in wire format, deliberately out of order."""
    return [
        {
            "id": "c10",
            "name": "class-10",
            "displayName": "Class Ten",
            "level": "secondary",
            "displayOrder": 2,
            "subjects": [
                {
                    "id": "bio",
                    "name": "biology",
                    "displayName": "Biology",
                    "code": "138",
                    "displayOrder": 2,
                    "samplePrompts": ["What is photosynthesis?"],
                    "chapters": [
                        {"id": "bio-2", "title": "Photosynthesis", "sequence": 2},
                        {"id": "bio-1", "title": "Cells", "titleBn": "কোষ", "sequence": 1},
                    ],
                },
                {
                    "id": "math",
                    "name": "math",
                    "displayName": "Mathematics",
                    "displayOrder": 1,
                    "chapters": [],
                },
            ],
        },
        {
            "id": "c9",
            "name": "class-9",
            "displayName": "Class Nine",
            "displayOrder": 1,
            "subjects": [],
        },
    ]


@pytest.fixture
def catalog(syllabus_payload):
    """Syllabus catalog built from syllabus_payload."""
    return SyllabusCatalog.from_payload(syllabus_payload)


@pytest.fixture
def sample_history():
    """A committed question/answer pair."""
    return [
        Message(role=Role.USER, content="Hello"),
        Message(role=Role.ASSISTANT, content="Hi there"),
    ]


@pytest.fixture
def mock_llm_client():
    """Create a mock LLM client for testing."""
    return Mock()


@pytest.fixture
def mock_streaming_chunks():
    """Mock LLM streaming chunks, usage reported on the last one."""
    return [
        Mock(content="Photo", usage_metadata={}),
        Mock(content="synthesis is...", usage_metadata={}),
        Mock(
            content="",
            usage_metadata={"input_tokens": 12, "output_tokens": 4, "total_tokens": 16},
        ),
    ]
