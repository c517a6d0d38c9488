"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验数值/字符串，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
"""

from __future__ import annotations

from collections.abc import Mapping

import httpx
from pydantic import BaseModel, Field, ValidationError

from jsoncache.http.client import HttpJsonFetcher

DEFAULT_FETCH_TIMEOUT_S = 30.0
DEFAULT_USER_AGENT = "resilient-json-cache/0.1.0"


class JsonCacheConfig(BaseModel):
    """缓存运行所需的配置集合（只有 cache_dir 必填）。"""

    cache_dir: str = Field(min_length=1)
    fetch_timeout_s: float = Field(default=DEFAULT_FETCH_TIMEOUT_S, gt=0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)


def load_config_from_env(environ: Mapping[str, str]) -> JsonCacheConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`JsonCacheConfig`
    - **失败**：`JSONCACHE_DIR` 缺失/为空，或 timeout 非法，抛 `ValueError`
    """
    cache_dir = environ.get("JSONCACHE_DIR", "")
    if not cache_dir:
        raise ValueError("Missing required env var: JSONCACHE_DIR")

    values: dict[str, object] = {"cache_dir": cache_dir}
    timeout_raw = environ.get("JSONCACHE_FETCH_TIMEOUT_S")
    if timeout_raw:
        values["fetch_timeout_s"] = timeout_raw
    user_agent = environ.get("JSONCACHE_USER_AGENT")
    if user_agent:
        values["user_agent"] = user_agent

    # 交给 Pydantic 做类型校验；对外统一成 ValueError
    try:
        return JsonCacheConfig.model_validate(values)
    except ValidationError as exc:
        raise ValueError(f"Invalid jsoncache config: {exc}") from exc


def build_http_client(config: JsonCacheConfig) -> httpx.AsyncClient:
    """创建可复用的 `httpx.AsyncClient`（超时取自配置）。"""
    return httpx.AsyncClient(timeout=httpx.Timeout(config.fetch_timeout_s))


def build_fetcher(config: JsonCacheConfig, http_client: httpx.AsyncClient) -> HttpJsonFetcher:
    """装配 live fetch 原语（复用调用方传入的 http client）。"""
    return HttpJsonFetcher(http_client=http_client, user_agent=config.user_agent)
