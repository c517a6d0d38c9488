from __future__ import annotations

import hashlib
import re

KEY_LENGTH = 64
_KEY_RE = re.compile(rf"[0-9a-f]{{{KEY_LENGTH}}}")


def derive_key(url: str) -> str:
    """URL -> 缓存 key（sha256 hex，可直接当文件名）。"""
    # surrogatepass：含 lone surrogate 的 str 也能编码，不会抛错
    return hashlib.sha256(url.encode("utf-8", errors="surrogatepass")).hexdigest()


def is_valid_key(key: str) -> bool:
    return bool(_KEY_RE.fullmatch(key))
