"""Unit tests for event-stream frame encoding."""

from ai_solver.chat.chunk_parsers import FrameParser
from ai_solver.chat.models import Delta, Done, StreamError
from ai_solver.server.sse import encode_chunk, encode_done, encode_error


class TestEncoding:
    """Encoded frames are understood by FrameParser."""

    def test_chunk(self):
        frame = encode_chunk("সালোকসংশ্লেষণ")
        assert frame == 'data: {"chunk": "সালোকসংশ্লেষণ"}\n\n'
        assert FrameParser.parse(frame.rstrip("\n")) == Delta(text="সালোকসংশ্লেষণ")

    def test_chunk_with_newlines(self):
        frame = encode_chunk("line one\nline two")
        assert frame.count("\n") == 2
        assert FrameParser.parse(frame.rstrip("\n")) == Delta(text="line one\nline two")

    def test_error(self):
        frame = encode_error("model overloaded")
        assert FrameParser.parse(frame.rstrip("\n")) == StreamError(message="model overloaded")

    def test_done(self):
        assert encode_done() == "data: [DONE]\n\n"
        assert FrameParser.parse(encode_done().rstrip("\n")) == Done()
