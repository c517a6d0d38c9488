"""
缓存流程里的结果类型。

用途：
- fetch / 读缓存 / 写缓存三个决策点都返回 `Success | Failure`，不用异常做控制流
- 只有需要抛给调用方时，才由 orchestrator 转成 `errors.py` 里的异常
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar, Union

T = TypeVar("T")

FailureKind = Literal["network", "timeout", "http", "not_found", "io", "parse"]

# JSON 文档解析后的值（json.loads 的返回类型）
JsonValue = Union[dict[str, "JsonValue"], list["JsonValue"], str, int, float, bool, None]


@dataclass(frozen=True)
class Success(Generic[T]):
    """成功分支：携带结果值。"""

    value: T


@dataclass(frozen=True)
class Failure:
    """失败分支：kind 用于分流，detail 给人看。"""

    kind: FailureKind
    detail: str
    status_code: int | None = None

    def describe(self) -> str:
        if self.status_code is not None:
            return f"{self.kind} (status={self.status_code}): {self.detail}"
        return f"{self.kind}: {self.detail}"


Result = Union[Success[T], Failure]
