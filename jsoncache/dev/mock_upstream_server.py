"""
本地 Mock 上游 JSON 服务（模拟一个不稳定的数据源）。

用途：
- 在没有真实上游的情况下，本地跑通：
  read_json -> live fetch 成功写缓存 -> 打开 fail 开关 -> read_json 走缓存回退

启动：
  python -m jsoncache.dev.mock_upstream_server
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi import HTTPException
from fastapi import Request
from fastapi import Response
from pydantic import BaseModel


class FailSwitch(BaseModel):
    enabled: bool
    status_code: int = 404


def _default_resources() -> dict[str, bytes]:
    return {
        "status.json": b'{"features": [{"slug": "fetch", "status": "shipped"}]}',
        "package.json": b'{"name": "upstream", "version": "1.0.0"}',
    }


def build_mock_upstream_app() -> FastAPI:
    """创建 mock app（每次调用都是独立状态，便于测试隔离）。"""
    app = FastAPI(title="Mock Upstream JSON", version="0.1.0")

    resources = _default_resources()
    fail = FailSwitch(enabled=False)
    hits: dict[str, int] = {}

    @app.get("/resources/{name}")
    async def get_resource(name: str) -> Response:
        hits[name] = hits.get(name, 0) + 1
        if fail.enabled:
            raise HTTPException(status_code=fail.status_code, detail="forced failure")
        body = resources.get(name)
        if body is None:
            raise HTTPException(status_code=404, detail=f"unknown resource: {name}")
        return Response(content=body, media_type="application/json")

    @app.put("/__debug__/resources/{name}")
    async def put_resource(name: str, request: Request) -> dict[str, object]:
        # 原样保存 body（允许写入非法 JSON，用于模拟上游格式损坏）
        resources[name] = await request.body()
        return {"name": name, "bytes": len(resources[name])}

    @app.post("/__debug__/fail")
    async def set_fail(switch: FailSwitch) -> dict[str, object]:
        fail.enabled = switch.enabled
        fail.status_code = switch.status_code
        return fail.model_dump()

    @app.get("/__debug__/requests")
    async def debug_requests() -> dict[str, object]:
        return {"hits": hits}

    return app


app = build_mock_upstream_app()


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9003)


if __name__ == "__main__":
    main()
