"""Unit tests for ChatHandler."""

import json
import threading
from unittest.mock import patch

import httpx
import pytest

from ai_solver.chat.models import Message, Role, SessionState
from ai_solver.exceptions import SessionBusyError, TransportError, ValidationError

from conftest import chunk_json, split_every, sse_frames


PHOTOSYNTHESIS_BODY = sse_frames(chunk_json("Photo"), chunk_json("synthesis is..."), "[DONE]")


def ask(handler, session, prompt="What is photosynthesis?", class_id="c10", subject_id="bio", chapter_id=None):
    return list(handler.stream_response(session, class_id, subject_id, prompt, chapter_id))


class TestStreamResponse:
    """Tests for ChatHandler.stream_response."""

    def test_streams_and_commits_answer(self, make_chat_handler, session):
        """Deltas are yielded in order and the answer is committed on [DONE]."""
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])

        updates = ask(handler, session)

        content_updates = [u.content for u in updates if u.content]
        stats_updates = [u for u in updates if u.metadata]
        assert content_updates == ["Photo", "synthesis is..."]
        assert len(stats_updates) == 1
        assert updates[-1] is stats_updates[0]
        assert stats_updates[0].metadata["delta_count"] == 2
        assert stats_updates[0].metadata["char_count"] == len("Photosynthesis is...")

        assert session.state is SessionState.IDLE
        assert session.messages == [
            Message(role=Role.USER, content="What is photosynthesis?"),
            Message(role=Role.ASSISTANT, content="Photosynthesis is..."),
        ]

    def test_request_payload(self, make_chat_handler, session, sent_requests):
        """The first request carries an empty history and no chapterId."""
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])

        ask(handler, session)

        assert len(sent_requests) == 1
        request = sent_requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/praggo/solve"
        assert request.headers["Accept"] == "text/event-stream"
        assert request.headers["X-Request-ID"].startswith("req-")
        assert json.loads(request.content) == {
            "classId": "c10",
            "subjectId": "bio",
            "prompt": "What is photosynthesis?",
            "conversationHistory": [],
        }

    def test_history_excludes_new_prompt(self, make_chat_handler, session, sent_requests):
        ask(make_chat_handler([PHOTOSYNTHESIS_BODY]), session)
        ask(
            make_chat_handler([sse_frames(chunk_json("Chlorophyll."), "[DONE]")]),
            session,
            prompt="Which pigment?",
            chapter_id="bio-2",
        )

        body = json.loads(sent_requests[-1].content)
        assert body["prompt"] == "Which pigment?"
        assert body["chapterId"] == "bio-2"
        assert body["conversationHistory"] == [
            {"role": "user", "content": "What is photosynthesis?"},
            {"role": "assistant", "content": "Photosynthesis is..."},
        ]
        assert [m.content for m in session.messages][-2:] == ["Which pigment?", "Chlorophyll."]

    def test_error_frame_discards_partial(self, make_chat_handler, session):
        """An error frame surfaces its message and nothing is committed."""
        body = sse_frames(chunk_json("Partial"), json.dumps({"error": "model overloaded"}))
        handler = make_chat_handler([body])

        updates = ask(handler, session)

        assert [u.content for u in updates if u.content] == ["Partial"]
        assert [u.error for u in updates if u.error] == ["model overloaded"]
        assert updates[-1].metadata is not None
        assert session.state is SessionState.IDLE
        assert session.last_error == "model overloaded"
        assert session.messages == [Message(role=Role.USER, content="What is photosynthesis?")]

    def test_frames_after_error_are_not_applied(self, make_chat_handler, session):
        body = sse_frames(json.dumps({"error": "boom"}), chunk_json("late"), "[DONE]")

        updates = ask(make_chat_handler([body]), session)

        assert not [u for u in updates if u.content]
        assert len(session.messages) == 1

    @pytest.mark.parametrize("prompt,class_id,subject_id", [
        ("", "c10", "bio"),
        ("   ", "c10", "bio"),
        ("What is photosynthesis?", "", "bio"),
        ("What is photosynthesis?", "c10", ""),
    ])
    def test_incomplete_request_is_rejected(
        self, make_chat_handler, session, sent_requests, prompt, class_id, subject_id
    ):
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])

        with pytest.raises(ValidationError):
            ask(handler, session, prompt=prompt, class_id=class_id, subject_id=subject_id)

        assert sent_requests == []
        assert session.messages == []
        assert session.state is SessionState.IDLE

    def test_busy_session_is_rejected(self, make_chat_handler, session, sent_requests):
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        first = handler.stream_response(session, "c10", "bio", "First question")
        next(first)

        with pytest.raises(SessionBusyError):
            ask(handler, session, prompt="Second question")

        assert len(sent_requests) == 1
        assert [m.content for m in session.messages] == ["First question"]
        first.close()

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 4096])
    def test_chunk_boundaries_do_not_change_answer(self, make_chat_handler, session, size):
        """Splitting the body anywhere, even inside a character, gives the same answer."""
        body = sse_frames(chunk_json("সালোকসংশ্লেষণ"), chunk_json(" is photosynthesis"), "[DONE]")

        ask(make_chat_handler(split_every(body, size)), session)

        assert session.messages[-1].content == "সালোকসংশ্লেষণ is photosynthesis"

    def test_end_without_done_commits_partial(self, make_chat_handler, session):
        body = sse_frames(chunk_json("Best "), chunk_json("effort"))

        updates = ask(make_chat_handler([body]), session)

        assert not [u for u in updates if u.error]
        assert session.messages[-1] == Message(role=Role.ASSISTANT, content="Best effort")
        assert session.state is SessionState.IDLE

    def test_end_without_content_commits_nothing(self, make_chat_handler, session):
        updates = ask(make_chat_handler([b": keep-alive\n\n"]), session)

        assert updates[-1].metadata["delta_count"] == 0
        assert len(session.messages) == 1
        assert session.state is SessionState.IDLE

    def test_malformed_frame_is_skipped_and_counted(self, make_chat_handler, session):
        body = sse_frames(chunk_json("a"), '{"chunk": "bro', chunk_json("b"), "[DONE]")

        updates = ask(make_chat_handler([body]), session)

        assert session.messages[-1].content == "ab"
        assert updates[-1].metadata["dropped_frames"] == 1

    def test_empty_chunks_are_not_yielded(self, make_chat_handler, session):
        body = sse_frames(chunk_json(""), chunk_json("x"), "[DONE]")

        updates = ask(make_chat_handler([body]), session)

        assert [u.content for u in updates if u.content] == ["x"]

    def test_connection_failure(self, make_chat_handler, session):
        handler = make_chat_handler(error=httpx.ConnectError("connection refused"))

        updates = ask(handler, session)

        assert [u.error for u in updates if u.error] == [TransportError.DEFAULT_MESSAGE]
        assert updates[-1].metadata is not None
        assert session.state is SessionState.IDLE
        assert session.last_error == TransportError.DEFAULT_MESSAGE
        assert session.messages == [Message(role=Role.USER, content="What is photosynthesis?")]

    def test_http_error_status(self, make_chat_handler, session):
        handler = make_chat_handler(status_code=500, json_body={"detail": "Internal error"})

        updates = ask(handler, session)

        assert [u.error for u in updates if u.error] == [TransportError.DEFAULT_MESSAGE]
        assert len(session.messages) == 1

    def test_read_failure_mid_stream_discards_partial(self, make_chat_handler, session):
        def body():
            yield sse_frames(chunk_json("Partial"))
            raise httpx.ReadError("connection reset")

        updates = ask(make_chat_handler(body()), session)

        assert [u.content for u in updates if u.content] == ["Partial"]
        assert [u.error for u in updates if u.error] == [TransportError.DEFAULT_MESSAGE]
        assert len(session.messages) == 1
        assert session.partial_answer == ""

    def test_session_recovers_after_failure(self, make_chat_handler, session):
        ask(make_chat_handler(error=httpx.ConnectError("down")), session)
        ask(make_chat_handler([PHOTOSYNTHESIS_BODY]), session, prompt="Retry")

        assert [m.content for m in session.messages] == [
            "What is photosynthesis?",
            "Retry",
            "Photosynthesis is...",
        ]

    def test_closing_generator_cancels_request(self, make_chat_handler, session):
        """Abandoning the stream cancels it without committing the partial answer."""
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])

        with patch("ai_solver.chat.chat_handler.log_solve_response") as mock_log:
            stream = handler.stream_response(session, "c10", "bio", "What is photosynthesis?")
            assert next(stream).content == "Photo"
            stream.close()

        assert session.state is SessionState.IDLE
        assert session.partial_answer == ""
        assert session.messages == [Message(role=Role.USER, content="What is photosynthesis?")]
        assert mock_log.call_args.kwargs["outcome"] == "cancelled"

    def test_outcome_logged_on_commit(self, make_chat_handler, session):
        with patch("ai_solver.chat.chat_handler.log_solve_response") as mock_log:
            ask(make_chat_handler([PHOTOSYNTHESIS_BODY]), session)

        mock_log.assert_called_once()
        assert mock_log.call_args.kwargs["outcome"] == "committed"
        assert mock_log.call_args.kwargs["delta_count"] == 2


class TestHistory:
    """Tests for history access and clearing."""

    def test_get_history(self, make_chat_handler, session):
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        ask(handler, session)

        assert handler.get_history(session) == [
            {"role": "user", "content": "What is photosynthesis?"},
            {"role": "assistant", "content": "Photosynthesis is..."},
        ]

    def test_clear_history(self, make_chat_handler, session):
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        ask(handler, session)

        handler.clear_history(session)

        assert handler.get_history(session) == []

    def test_clear_while_streaming_cancels_first(self, make_chat_handler, session):
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        stream = handler.stream_response(session, "c10", "bio", "What is photosynthesis?")
        assert next(stream).content == "Photo"

        handler.clear_history(session)
        remaining = list(stream)

        assert session.messages == []
        assert session.state is SessionState.IDLE
        assert not [u for u in remaining if u.content]
        assert remaining[-1].metadata is not None

    def test_cancelled_stream_leaves_next_request_alone(self, make_chat_handler, make_solver_client, session):
        """Draining a cleared stream neither writes into nor commits the request that replaced it."""
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        first = handler.stream_response(session, "c10", "bio", "First")
        assert next(first).content == "Photo"

        handler.clear_history(session)
        handler.solver_client = make_solver_client([sse_frames(chunk_json("Chloro"), chunk_json("phyll"), "[DONE]")])
        second = handler.stream_response(session, "c10", "bio", "Second")
        assert next(second).content == "Chloro"

        first_remaining = list(first)

        assert not [u for u in first_remaining if u.content]
        assert session.streaming
        assert session.partial_answer == "Chloro"

        second_remaining = list(second)

        assert [u.content for u in second_remaining if u.content] == ["phyll"]
        assert session.messages == [
            Message(role=Role.USER, content="Second"),
            Message(role=Role.ASSISTANT, content="Chlorophyll"),
        ]
        assert session.state is SessionState.IDLE

    def test_closing_cancelled_stream_keeps_next_request(self, make_chat_handler, make_solver_client, session):
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        first = handler.stream_response(session, "c10", "bio", "First")
        next(first)

        handler.clear_history(session)
        handler.solver_client = make_solver_client([sse_frames(chunk_json("Chloro"), chunk_json("phyll"), "[DONE]")])
        second = handler.stream_response(session, "c10", "bio", "Second")
        next(second)

        with patch("ai_solver.chat.chat_handler.log_solve_response") as mock_log:
            first.close()

        assert mock_log.call_args.kwargs["outcome"] == "cancelled"
        assert session.streaming
        list(second)
        assert [m.content for m in session.messages] == ["Second", "Chlorophyll"]

    def test_clear_waits_for_session_transition(self, make_chat_handler, session):
        """Clear from another thread is serialized with the streaming thread's transitions."""
        handler = make_chat_handler([PHOTOSYNTHESIS_BODY])
        stream = handler.stream_response(session, "c10", "bio", "What is photosynthesis?")
        next(stream)

        with handler._session_lock:
            clearer = threading.Thread(target=handler.clear_history, args=(session,))
            clearer.start()
            clearer.join(timeout=0.2)
            assert clearer.is_alive()
            assert session.streaming
            assert session.partial_answer == "Photo"

        clearer.join(timeout=5)
        assert not clearer.is_alive()
        assert session.state is SessionState.IDLE
        assert session.partial_answer == ""
        assert session.messages == []
        assert not [u for u in list(stream) if u.content]
