"""流式线协议编解码测试"""

import pytest
from forcefit.provider.wire import (
    DONE_MARKER,
    RelayEvent,
    RelayEventKind,
    encode_event,
    parse_data,
    parse_sse_line,
)


class TestEncode:
    def test_content_frame(self):
        assert encode_event(RelayEvent.content("Hi")) == 'data: {"content": "Hi"}\n\n'

    def test_error_frame(self):
        frame = encode_event(RelayEvent.error("Failed to generate response"))
        assert frame == 'data: {"error": "Failed to generate response"}\n\n'

    def test_done_frame(self):
        assert encode_event(RelayEvent.done()) == "data: [DONE]\n\n"

    def test_non_ascii_kept(self):
        assert "训练" in RelayEvent.content("训练计划").to_data()

    def test_terminal_kinds(self):
        assert RelayEvent.content("x").is_terminal is False
        assert RelayEvent.error("x").is_terminal is True
        assert RelayEvent.done().is_terminal is True


class TestParse:
    def test_done_marker(self):
        assert parse_data(f" {DONE_MARKER}") == RelayEvent.done()

    def test_content(self):
        event = parse_data('{"content": "Hello"}')
        assert event.kind == RelayEventKind.CONTENT
        assert event.text == "Hello"

    def test_error_string(self):
        assert parse_data('{"error": "boom"}') == RelayEvent.error("boom")

    def test_error_object(self):
        assert parse_data('{"error": {"message": "quota"}}') == RelayEvent.error("quota")

    def test_empty_error_gets_default(self):
        assert parse_data('{"error": ""}') == RelayEvent.error("Unknown error")

    @pytest.mark.parametrize(
        "payload",
        [
            "{not json",
            "[1, 2]",
            '"text"',
            '{"content": ""}',
            '{"content": 42}',
            '{"other": "x"}',
        ],
    )
    def test_malformed_payload_skipped(self, payload: str):
        assert parse_data(payload) is None

    def test_sse_line_requires_data_prefix(self):
        assert parse_sse_line("") is None
        assert parse_sse_line(": keep-alive") is None
        assert parse_sse_line("event: message") is None
        assert parse_sse_line('data: {"content": "a"}') == RelayEvent.content("a")
        assert parse_sse_line('data:{"content": "b"}') == RelayEvent.content("b")

    def test_encoded_frame_parses_back(self):
        frame = encode_event(RelayEvent.content("片段"))
        line = frame.splitlines()[0]
        assert parse_sse_line(line) == RelayEvent.content("片段")
