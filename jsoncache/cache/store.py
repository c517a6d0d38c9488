from __future__ import annotations

import logging
import os
import tempfile

from jsoncache.cache.keys import is_valid_key
from jsoncache.cache.models import Failure, Result, Success

logger = logging.getLogger(__name__)


class CacheStore:
    """
    单目录的磁盘缓存（一个 key 一个文件）。

    - 目录由调用方创建；这里不会 mkdir
    - 写入走“临时文件 + os.replace”，读者不会看到写了一半的文件
    - 所有方法都是同步的；异步调用方用 `anyio.to_thread.run_sync` 包一层
    """

    def __init__(self, cache_dir: str) -> None:
        if not cache_dir:
            raise ValueError("cache_dir must be non-empty")
        self._cache_dir = cache_dir

    def path_for(self, key: str) -> str:
        if not is_valid_key(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return os.path.join(self._cache_dir, key)

    def exists(self, key: str) -> bool:
        path = self.path_for(key)
        return os.path.isfile(path) and os.access(path, os.R_OK)

    def read(self, key: str) -> Result[bytes]:
        path = self.path_for(key)
        try:
            with open(path, "rb") as handle:
                return Success(handle.read())
        except FileNotFoundError:
            return Failure(kind="not_found", detail=f"No cache entry at {path}")
        except OSError as exc:
            logger.error(f"Cache read failed: path={path}, error={exc}")
            return Failure(kind="io", detail=f"Cannot read cache entry {path}: {exc}")

    def write(self, key: str, data: bytes) -> Result[None]:
        path = self.path_for(key)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._cache_dir, prefix=f".{key}.", suffix=".tmp")
        except OSError as exc:
            return Failure(kind="io", detail=f"Cannot create temp file in {self._cache_dir}: {exc}")

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            _remove_quietly(tmp_path)
            return Failure(kind="io", detail=f"Cannot write cache entry {path}: {exc}")
        except BaseException:
            _remove_quietly(tmp_path)
            raise
        return Success(None)


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning(f"Failed to remove temp file {path}: {exc}")
