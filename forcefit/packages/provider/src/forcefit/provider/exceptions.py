"""Provider 异常体系

BackendError: 文本生成后端失败或返回错误载荷（阻塞调用 / 流中途）。
TransportError: 到后端的通道在终止标记之前断开，已累积文本不可视为完整回复。
"""


class ProviderError(Exception):
    """Provider 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试或降级恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class BackendError(ProviderError):
    """文本生成后端失败（含显式 error 事件与非成功 HTTP 响应）"""


class TransportError(ProviderError):
    """通道断开且未收到终止标记"""


class ProxyUnreachableError(TransportError):
    """LiteLLM Proxy / 模型服务不可达（连接失败、超时、DNS 解析失败等）

    此异常触发 FallbackManager 的降级逻辑。
    """

    def __init__(self, proxy_url: str, original_error: Exception) -> None:
        """
        Args:
            proxy_url: 尝试连接的地址
            original_error: 原始异常
        """
        super().__init__(
            f"LLM 服务不可达: {proxy_url} -- {original_error}",
            recoverable=True,
        )
        self.proxy_url = proxy_url
        self.original_error = original_error
