"""
Fetch-With-Fallback Orchestrator（核心流程编排）。

流程：
- Step 1: derive key（确定性，非 IO）
- Step 2: live fetch（挂起点 1）
- Step 3: 成功 -> 写缓存（挂起点 2，best-effort）-> 解析 JSON -> 返回
- Step 4: 失败 -> 读缓存（挂起点 2）-> 解析 JSON -> 返回；没缓存就抛错

注意：
- 404/任何非 2xx 与网络错误、超时一样，都走 Step 4
- JSON 解析失败**永远不回退**：网络可达时回退只会掩盖上游格式变化
- 同一 (url, cache_dir) 的并发调用之间没有隔离保证；需要强一致的调用方自己串行化
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass

import anyio

from jsoncache.cache.errors import CacheIOError, JsonCacheError, JsonParseError, NoCachedFallbackError, error_from_failure
from jsoncache.cache.keys import derive_key
from jsoncache.cache.models import Failure, JsonValue, Result, Success
from jsoncache.cache.store import CacheStore
from jsoncache.config import JsonCacheConfig, build_fetcher, build_http_client
from jsoncache.http.client import JsonSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResilientJsonCache:
    """Orchestrator 运行时依赖集合（fetch 原语 + 可选的整体超时）。"""

    fetcher: JsonSource
    fetch_timeout_s: float | None = None

    async def read_json(self, url: str, store: CacheStore) -> JsonValue:
        """
        读取 url 对应的 JSON：优先 live，失败时回退到 store 里的最后一次成功结果。

        - 成功：返回解析后的 JSON（live 与缓存两条路径类型一致）
        - 失败：`JsonParseError` / `NoCachedFallbackError` / `CacheIOError`
        """
        key = derive_key(url)

        fetched = await self._fetch(url)
        if isinstance(fetched, Success):
            body = fetched.value
            logger.info(f"Live fetch ok: url={url}, bytes={len(body)}")
            written = await anyio.to_thread.run_sync(store.write, key, body)
            if isinstance(written, Failure):
                # 写缓存是 best-effort，不能影响已经拿到的新数据
                logger.error(f"Cache write failed (serving live data anyway): url={url}, {written.describe()}")
            return _parse_json(body, url=url, source="live")

        logger.warning(f"Live fetch failed, trying cache: url={url}, {fetched.describe()}")
        cached = await anyio.to_thread.run_sync(store.read, key)
        if isinstance(cached, Success):
            logger.info(f"Serving cached fallback: url={url}, bytes={len(cached.value)}")
            return _parse_json(cached.value, url=url, source="cache")

        if cached.kind == "not_found":
            logger.error(f"No cached fallback available: url={url}")
            raise NoCachedFallbackError(url=url, fetch_failure=fetched) from error_from_failure(fetched)
        raise CacheIOError(
            f"Fetch failed for {url} ({fetched.describe()}) and cache read failed: {cached.detail}"
        ) from error_from_failure(fetched)

    async def _fetch(self, url: str) -> Result[bytes]:
        """live fetch；整体超时到期按 `Failure("timeout")` 处理，不绕过回退。"""
        if self.fetch_timeout_s is None:
            return await self._fetch_guarded(url)

        result: Result[bytes] | None = None
        with anyio.move_on_after(self.fetch_timeout_s):
            result = await self._fetch_guarded(url)
        if result is None:
            return Failure(kind="timeout", detail=f"Fetch of {url} exceeded {self.fetch_timeout_s}s")
        return result

    async def _fetch_guarded(self, url: str) -> Result[bytes]:
        """fetch 原语抛出的异常与非 2xx 同等对待（取消是 BaseException，不会被吞）。"""
        try:
            return await self.fetcher.fetch(url)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Fetcher raised instead of returning Failure: url={url}, error={exc!r}")
            return Failure(kind="network", detail=f"Fetcher raised for {url}: {exc!r}")


async def read_json(
    url: str,
    cache_dir: str,
    fetcher: JsonSource | None = None,
    fetch_timeout_s: float | None = None,
) -> JsonValue:
    """
    对外唯一入口：`read_json(url, cache_dir)`。

    - 没传 fetcher 时，按默认配置临时创建一个 httpx client（调用结束即关闭）
    - cache_dir 必须已存在；不存在时写缓存失败只会记日志
    """
    store = CacheStore(cache_dir=cache_dir)
    if fetcher is not None:
        cache = ResilientJsonCache(fetcher=fetcher, fetch_timeout_s=fetch_timeout_s)
        return await cache.read_json(url=url, store=store)

    config = JsonCacheConfig(cache_dir=cache_dir)
    async with build_http_client(config) as http_client:
        cache = ResilientJsonCache(fetcher=build_fetcher(config, http_client), fetch_timeout_s=fetch_timeout_s)
        return await cache.read_json(url=url, store=store)


async def read_json_many(
    urls: Iterable[str],
    cache_dir: str,
    fetcher: JsonSource,
    fetch_timeout_s: float | None = None,
) -> dict[str, JsonValue]:
    """
    并发读取多个 url（构建步骤一次缓存多份资源的场景）。

    - 重复 url 只读一次
    - 任一 url 出现不可恢复错误：取消其余任务并把错误抛给调用方
    """
    store = CacheStore(cache_dir=cache_dir)
    cache = ResilientJsonCache(fetcher=fetcher, fetch_timeout_s=fetch_timeout_s)
    results: dict[str, JsonValue] = {}

    async def _read_one(url: str) -> None:
        results[url] = await cache.read_json(url=url, store=store)

    unique_urls = list(dict.fromkeys(urls))
    try:
        async with anyio.create_task_group() as tg:
            for url in unique_urls:
                tg.start_soon(_read_one, url)
    except BaseExceptionGroup as group:
        # 对调用方暴露原始错误类型，而不是 task group 的异常组
        for exc in group.exceptions:
            if isinstance(exc, JsonCacheError):
                raise exc
        raise
    return {url: results[url] for url in unique_urls}


def _parse_json(body: bytes, url: str, source: str) -> JsonValue:
    """live 与缓存共用的解析逻辑（保证调用方拿到的类型一致）。"""
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error(f"Invalid JSON from {source}: url={url}, error={exc}")
        raise JsonParseError(f"Invalid JSON from {source} for {url}: {exc}", source=source) from exc
