"""
请求上下文

每个 HTTP 请求在进入路由前解析出 token 和客户端 IP，放入 ContextVar，
service 层通过 get_ctx() 读取，无需层层传递 Request
"""
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

DEFAULT_CLIENT_IP = "127.0.0.1"


@dataclass(frozen=True)
class Ctx:
    token: Optional[str] = None
    client_ip: str = DEFAULT_CLIENT_IP


_request_context: ContextVar[Ctx] = ContextVar("ctx", default=Ctx())


def _parse_token(conn: HTTPConnection) -> Optional[str]:
    """支持 Authorization: Bearer xxx 和 X-Token 两种头部"""
    value = conn.headers.get("Authorization") or conn.headers.get("X-Token")
    if value and value.startswith("Bearer "):
        return value[len("Bearer "):]
    return value or None


def _parse_client_ip(conn: HTTPConnection) -> str:
    """优先取反向代理转发的 X-Forwarded-For 第一个地址"""
    forwarded_for = conn.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if conn.client:
        return conn.client.host
    return DEFAULT_CLIENT_IP


class RequestContextMiddleware:

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        conn = HTTPConnection(scope)
        reset_token = _request_context.set(Ctx(token=_parse_token(conn), client_ip=_parse_client_ip(conn)))
        try:
            await self.app(scope, receive, send)
        finally:
            _request_context.reset(reset_token)


def get_ctx() -> Ctx:
    """获取当前请求上下文，不在请求中时返回空上下文"""
    return _request_context.get()
