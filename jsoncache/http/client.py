"""
远端 JSON 资源的 live fetch 原语（外部系统连接器）。

约定：
- 这里只做“HTTP 调用 + 结果归一化”，不碰缓存、不解析 JSON
- 传输层失败/非 2xx 都返回 `Failure`，不抛异常（回退决策在 orchestrator 里做）
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from jsoncache.cache.models import Failure, Result, Success

logger = logging.getLogger(__name__)


class JsonSource(Protocol):
    """fetch 原语协议（用于依赖倒置，方便在测试里替换）。"""

    async def fetch(self, url: str) -> Result[bytes]: ...


class HttpJsonFetcher:
    """基于 httpx 的最小 fetch 实现。"""

    def __init__(self, http_client: httpx.AsyncClient, user_agent: str) -> None:
        """
        - http_client: 复用的 httpx.AsyncClient（超时在 client 上配置）
        - user_agent: 请求头 User-Agent
        """
        self._http_client = http_client
        self._user_agent = user_agent

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._user_agent, "Accept": "application/json"}

    async def fetch(self, url: str) -> Result[bytes]:
        """
        GET 一次 url，返回原始响应字节。

        - 2xx 且有 body：`Success(content)`（字节原样返回，写缓存时不做任何转换）
        - 非 2xx，或 2xx 但 body 为空：`Failure("http")`
        - 超时：`Failure("timeout")`；其他传输错误/非法 URL：`Failure("network")`
        """
        try:
            logger.info(f"Live fetch: url={url}")
            response = await self._http_client.get(url, headers=self._headers(), follow_redirects=True)
        except httpx.TimeoutException as exc:
            return Failure(kind="timeout", detail=f"Timed out fetching {url}: {exc!r}")
        except httpx.HTTPError as exc:
            return Failure(kind="network", detail=f"Network error fetching {url}: {exc!r}")
        except (httpx.InvalidURL, ValueError) as exc:
            # 非法 URL 在构建请求时就抛错，不属于 httpx.HTTPError
            return Failure(kind="network", detail=f"Cannot request {url!r}: {exc!r}")

        if not response.is_success:
            return Failure(
                kind="http",
                detail=f"HTTP {response.status_code} for {url}",
                status_code=response.status_code,
            )
        if not response.content:
            return Failure(
                kind="http",
                detail=f"HTTP {response.status_code} with empty body for {url}",
                status_code=response.status_code,
            )
        return Success(response.content)
