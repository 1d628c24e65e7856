"""StreamingRelay 测试

增量与阻塞两条路径对消费方表现一致：拼接后的文本相同。
"""

from forcefit.provider.echo_adapter import EchoMessageAdapter
from forcefit.provider.fallback import FallbackManager
from forcefit.provider.relay import StreamingRelay
from forcefit.provider.streaming import StreamState
from forcefit.provider.wire import RelayEventKind

_META = {"coach_id": "elite-performance", "user_id": "u1"}


async def _reply_text(relay: StreamingRelay, messages) -> tuple[str, list]:
    events = [e async for e in relay.open_stream(messages, metadata=_META)]
    text = "".join(e.text for e in events if e.kind == RelayEventKind.CONTENT)
    return text, events


class TestStreamingRelay:
    async def test_capability_requires_flag_and_backend(self):
        streaming_backend = FallbackManager(EchoMessageAdapter())
        blocking_backend = FallbackManager(EchoMessageAdapter(supports_streaming=False))

        assert StreamingRelay(streaming_backend).supports_streaming is True
        relay = StreamingRelay(streaming_backend, streaming_enabled=False)
        assert relay.supports_streaming is False
        assert StreamingRelay(blocking_backend).supports_streaming is False

    async def test_streaming_path_multiple_fragments(self, sample_messages):
        relay = StreamingRelay(FallbackManager(EchoMessageAdapter()))
        text, events = await _reply_text(relay, sample_messages)

        assert len(events) > 2
        assert events[-1].kind == RelayEventKind.DONE
        assert text

    async def test_blocking_path_single_fragment(self, sample_messages):
        relay = StreamingRelay(FallbackManager(EchoMessageAdapter(supports_streaming=False)))
        text, events = await _reply_text(relay, sample_messages)

        assert [e.kind for e in events] == [RelayEventKind.CONTENT, RelayEventKind.DONE]
        assert text

    async def test_both_paths_same_text(self, sample_messages):
        streaming = StreamingRelay(FallbackManager(EchoMessageAdapter()))
        blocking = StreamingRelay(FallbackManager(EchoMessageAdapter()), streaming_enabled=False)

        streamed, _ = await _reply_text(streaming, sample_messages)
        single, _ = await _reply_text(blocking, sample_messages)
        result = await blocking.complete(sample_messages, metadata=_META)

        assert streamed == single == result.content

    async def test_open_stream_is_lazy(self, sample_messages):
        relay = StreamingRelay(FallbackManager(EchoMessageAdapter()))
        stream = relay.open_stream(sample_messages)
        assert stream.state == StreamState.IDLE
        await stream.aclose()
        assert stream.state == StreamState.CANCELLED
