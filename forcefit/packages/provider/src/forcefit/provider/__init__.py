"""ForceFit Provider -- 文本生成后端与流式中继

packages/provider 的公开接口导出。
"""

from .client import LiteLLMClient
from .config import ProviderConfig, load_provider_config
from .consumer import CoachingChatClient, StreamAccumulator
from .cost import CostTracker
from .echo_adapter import EchoMessageAdapter
from .exceptions import BackendError, ProviderError, ProxyUnreachableError, TransportError
from .fallback import FallbackManager
from .models import ModelCallResult, TokenUsage
from .relay import StreamingRelay
from .streaming import STREAM_ERROR_MESSAGE, ChatStream, StreamState
from .wire import RelayEvent, RelayEventKind, encode_event, parse_data, parse_sse_line

__all__ = [
    "ModelCallResult",
    "TokenUsage",
    "LiteLLMClient",
    "EchoMessageAdapter",
    "CostTracker",
    "FallbackManager",
    "StreamingRelay",
    "ChatStream",
    "StreamState",
    "STREAM_ERROR_MESSAGE",
    "RelayEvent",
    "RelayEventKind",
    "encode_event",
    "parse_data",
    "parse_sse_line",
    "StreamAccumulator",
    "CoachingChatClient",
    "ProviderConfig",
    "load_provider_config",
    "ProviderError",
    "BackendError",
    "TransportError",
    "ProxyUnreachableError",
]
