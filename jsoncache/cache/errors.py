from __future__ import annotations

"""
缓存相关的错误类型。

分两类：
- **可恢复**：`NetworkError` / `HttpStatusError`（只要有缓存就被 orchestrator 吸收）
- **不可恢复**：`JsonParseError` / `NoCachedFallbackError` / 回退读缓存时的 `CacheIOError`
"""

from jsoncache.cache.models import Failure


class JsonCacheError(RuntimeError):
    """本包所有错误的基类。"""

    pass


class NetworkError(JsonCacheError):
    """live fetch 没有完成（DNS/连接/超时）。"""

    pass


class HttpStatusError(NetworkError):
    """live fetch 完成了，但状态码不是 2xx。"""

    def __init__(self, message: str, status_code: int | None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CacheNotFoundError(JsonCacheError):
    """缓存目录里没有该 key 的条目。"""

    pass


class CacheIOError(JsonCacheError):
    """缓存条目存在但读不了，或者写入失败。"""

    pass


class JsonParseError(JsonCacheError, ValueError):
    """live 响应或缓存文件不是合法 JSON（两条路径都不会再回退）。"""

    def __init__(self, message: str, source: str) -> None:
        super().__init__(message)
        self.source = source


class NoCachedFallbackError(CacheNotFoundError):
    """fetch 失败且没有可用缓存：把原始失败一起带给调用方。"""

    def __init__(self, url: str, fetch_failure: Failure) -> None:
        super().__init__(f"Fetch failed for {url} ({fetch_failure.describe()}) and no cached fallback available")
        self.url = url
        self.fetch_failure = fetch_failure


def error_from_failure(failure: Failure) -> JsonCacheError:
    """把 `Failure` 映射成对应的异常对象（不抛出，由调用方决定）。"""
    if failure.kind == "http":
        return HttpStatusError(failure.detail, status_code=failure.status_code)
    if failure.kind in ("network", "timeout"):
        return NetworkError(failure.detail)
    if failure.kind == "not_found":
        return CacheNotFoundError(failure.detail)
    if failure.kind == "io":
        return CacheIOError(failure.detail)
    if failure.kind == "parse":
        return JsonParseError(failure.detail, source="unknown")
    raise ValueError(f"Unknown failure kind: {failure.kind}")
