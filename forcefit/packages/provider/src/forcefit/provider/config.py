"""ProviderConfig -- Provider 配置加载

从环境变量加载配置，不硬编码 provider/模型名。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


class ProviderConfig(BaseModel):
    """Provider 包配置 -- 从环境变量加载

    环境变量:
        FORCEFIT_LLM_MODE: 后端模式（litellm/echo）
        FORCEFIT_LLM_MODEL: LiteLLM 模型名
        LITELLM_PROXY_URL: Proxy 地址（未设置则 SDK 直连）
        LITELLM_PROXY_KEY: Proxy 访问密钥
        FORCEFIT_LLM_TIMEOUT_S: 调用超时（秒，默认 30）
        FORCEFIT_LLM_STREAMING: 是否启用增量输出（默认 true）
        FORCEFIT_LLM_FALLBACK: 降级后端（none/echo）
    """

    llm_mode: Literal["litellm", "echo"] = Field(
        default="echo",
        description="后端模式：litellm / echo",
    )
    model: str = Field(
        default="gemini/gemini-1.5-flash",
        description="LiteLLM 模型名",
    )
    proxy_base_url: str | None = Field(
        default=None,
        description="LiteLLM Proxy 基础 URL，None 表示 SDK 直连",
    )
    proxy_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Proxy 访问密钥（不是 LLM provider API key）",
    )
    timeout_s: int = Field(
        default=30,
        ge=1,
        description="LLM 调用超时（秒）",
    )
    streaming: bool = Field(
        default=True,
        description="是否启用增量输出（后端也须支持）",
    )
    fallback: Literal["none", "echo"] = Field(
        default="none",
        description="主后端失败时的降级后端",
    )


def _parse_bool(env_var: str, value: str, default: bool) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    log.warning("invalid_bool_config", env_var=env_var, value=value, fallback=default)
    return default


def load_provider_config() -> ProviderConfig:
    """从环境变量加载 Provider 配置

    数值或布尔值非法时记录 warning 并保留默认值，不阻塞启动。

    Returns:
        ProviderConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("FORCEFIT_LLM_MODE"):
        kwargs["llm_mode"] = val

    if val := os.environ.get("FORCEFIT_LLM_MODEL"):
        kwargs["model"] = val

    if val := os.environ.get("LITELLM_PROXY_URL"):
        kwargs["proxy_base_url"] = val

    if val := os.environ.get("LITELLM_PROXY_KEY"):
        kwargs["proxy_api_key"] = SecretStr(val)

    if val := os.environ.get("FORCEFIT_LLM_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="FORCEFIT_LLM_TIMEOUT_S",
                value=val,
                fallback=30,
            )

    if val := os.environ.get("FORCEFIT_LLM_STREAMING"):
        kwargs["streaming"] = _parse_bool("FORCEFIT_LLM_STREAMING", val, True)

    if val := os.environ.get("FORCEFIT_LLM_FALLBACK"):
        kwargs["fallback"] = val

    return ProviderConfig(**kwargs)
