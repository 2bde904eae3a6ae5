from contextvars import ContextVar, Token
from typing import Optional

from fastapi import Request

_request: ContextVar[Optional[Request]] = ContextVar("request", default=None)


def bind_request(request: Request) -> Token:
    return _request.set(request)


def unbind_request(token: Token):
    _request.reset(token)


def get_request() -> Request:
    req = _request.get()
    if req is None:
        raise RuntimeError("No request bound; RequestContextMiddleware must wrap the app")
    return req
