"""FallbackManager 单元测试

验证 primary 成功不触发 fallback、primary 失败触发 fallback
（is_fallback=True + fallback_reason）、双方失败抛 BackendError；
增量调用仅在首个片段前允许降级。
"""

from unittest.mock import AsyncMock

import pytest
from forcefit.provider.echo_adapter import EchoMessageAdapter
from forcefit.provider.exceptions import BackendError, ProxyUnreachableError, TransportError
from forcefit.provider.fallback import FallbackManager
from forcefit.provider.models import ModelCallResult


def _make_result(content: str = "ok") -> ModelCallResult:
    return ModelCallResult(
        content=content,
        model_name="gemini-1.5-flash",
        provider="gemini",
        duration_ms=100,
    )


@pytest.fixture
def mock_primary():
    """Mock LiteLLMClient"""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=_make_result("primary response"))
    return client


@pytest.fixture
def mock_fallback():
    """Mock EchoMessageAdapter"""
    adapter = AsyncMock()
    adapter.complete = AsyncMock(return_value=_make_result("echo response"))
    return adapter


class _ScriptedStreamer:
    """按脚本产出片段，可在指定位置失败"""

    supports_streaming = True

    def __init__(self, fragments: list[str], error: Exception | None = None) -> None:
        self._fragments = fragments
        self._error = error
        self.closed = False
        self.calls = 0

    async def stream(self, messages, **kwargs):
        self.calls += 1
        try:
            for fragment in self._fragments:
                yield fragment
            if self._error is not None:
                raise self._error
        finally:
            self.closed = True


async def _collect(agen) -> list[str]:
    return [fragment async for fragment in agen]


class TestCallWithFallback:
    async def test_primary_success_no_fallback(self, mock_primary, mock_fallback):
        fm = FallbackManager(primary=mock_primary, fallback=mock_fallback)

        result = await fm.call_with_fallback([{"role": "user", "content": "test"}])

        assert result.content == "primary response"
        assert result.is_fallback is False
        mock_fallback.complete.assert_not_called()

    async def test_proxy_unreachable_triggers_fallback(self, mock_primary, mock_fallback):
        mock_primary.complete.side_effect = ProxyUnreachableError(
            "http://localhost:4000", ConnectionError("refused")
        )
        fm = FallbackManager(primary=mock_primary, fallback=mock_fallback)

        result = await fm.call_with_fallback([{"role": "user", "content": "test"}])

        assert result.content == "echo response"
        assert result.is_fallback is True
        assert "refused" in result.fallback_reason

    async def test_no_fallback_raises_backend_error(self, mock_primary):
        mock_primary.complete.side_effect = RuntimeError("quota exceeded")
        fm = FallbackManager(primary=mock_primary)

        with pytest.raises(BackendError, match="quota exceeded") as exc_info:
            await fm.call_with_fallback([{"role": "user", "content": "test"}])
        assert exc_info.value.recoverable is False

    async def test_both_fail(self, mock_primary, mock_fallback):
        mock_primary.complete.side_effect = RuntimeError("primary down")
        mock_fallback.complete.side_effect = RuntimeError("echo down")
        fm = FallbackManager(primary=mock_primary, fallback=mock_fallback)

        with pytest.raises(BackendError) as exc_info:
            await fm.call_with_fallback([{"role": "user", "content": "test"}])
        assert "primary down" in str(exc_info.value)
        assert "echo down" in str(exc_info.value)

    async def test_lazy_probe_recovers(self, mock_primary, mock_fallback):
        """每次调用都先尝试 primary"""
        mock_primary.complete.side_effect = [RuntimeError("blip"), _make_result("back")]
        fm = FallbackManager(primary=mock_primary, fallback=mock_fallback)

        first = await fm.call_with_fallback([{"role": "user", "content": "a"}])
        second = await fm.call_with_fallback([{"role": "user", "content": "b"}])

        assert first.is_fallback is True
        assert second.content == "back"
        assert second.is_fallback is False


class TestStreamWithFallback:
    async def test_primary_stream_passthrough(self):
        primary = _ScriptedStreamer(["a", "b", "c"])
        fm = FallbackManager(primary=primary, fallback=EchoMessageAdapter())

        assert await _collect(fm.stream_with_fallback([{"role": "user", "content": "x"}])) == [
            "a",
            "b",
            "c",
        ]
        assert primary.closed is True

    async def test_fallback_before_first_fragment(self):
        primary = _ScriptedStreamer([], error=ProxyUnreachableError("p", ConnectionError("x")))
        fm = FallbackManager(primary=primary, fallback=EchoMessageAdapter())

        fragments = await _collect(fm.stream_with_fallback([{"role": "user", "content": "hi"}]))

        assert "".join(fragments) == "Echo: hi"

    async def test_no_fallback_after_output(self):
        """已产出片段后失败：不降级，不拼接两个后端的输出"""
        primary = _ScriptedStreamer(["partial"], error=TransportError("dropped"))
        fallback = _ScriptedStreamer(["never"])
        fm = FallbackManager(primary=primary, fallback=fallback)

        received = []
        with pytest.raises(TransportError):
            async for fragment in fm.stream_with_fallback([{"role": "user", "content": "hi"}]):
                received.append(fragment)

        assert received == ["partial"]
        assert fallback.calls == 0

    async def test_non_provider_error_after_output_wrapped(self):
        primary = _ScriptedStreamer(["partial"], error=RuntimeError("boom"))
        fm = FallbackManager(primary=primary)

        with pytest.raises(BackendError, match="boom"):
            await _collect(fm.stream_with_fallback([{"role": "user", "content": "hi"}]))

    async def test_no_fallback_configured(self):
        primary = _ScriptedStreamer([], error=RuntimeError("down"))
        fm = FallbackManager(primary=primary)

        with pytest.raises(BackendError, match="down"):
            await _collect(fm.stream_with_fallback([{"role": "user", "content": "hi"}]))

    async def test_blocking_fallback_yields_single_fragment(self):
        primary = _ScriptedStreamer([], error=RuntimeError("down"))
        fm = FallbackManager(primary=primary, fallback=EchoMessageAdapter(supports_streaming=False))

        fragments = await _collect(fm.stream_with_fallback([{"role": "user", "content": "hi"}]))

        assert fragments == ["Echo: hi"]

    def test_supports_streaming_follows_primary(self):
        assert FallbackManager(EchoMessageAdapter()).supports_streaming is True
        manager = FallbackManager(EchoMessageAdapter(supports_streaming=False))
        assert manager.supports_streaming is False
