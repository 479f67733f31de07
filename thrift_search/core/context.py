from __future__ import annotations

import re
import uuid
from contextvars import ContextVar, Token
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

# Client supplied ids are echoed into logs and headers.
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_request_path_ctx_var: ContextVar[Optional[str]] = ContextVar("request_path", default=None)


def normalize_request_id(candidate: Optional[str]) -> str:
    if candidate and _REQUEST_ID_PATTERN.match(candidate.strip()):
        return candidate.strip()
    return uuid.uuid4().hex


def set_request_id(request_id: Optional[str] = None) -> Token:
    return _request_id_ctx_var.set(normalize_request_id(request_id))


def get_request_id() -> Optional[str]:
    return _request_id_ctx_var.get()


def reset_request_id(token: Token) -> None:
    _request_id_ctx_var.reset(token)


def set_request_path(path: Optional[str]) -> Token:
    return _request_path_ctx_var.set(path)


def get_request_path() -> Optional[str]:
    return _request_path_ctx_var.get()


def reset_request_path(token: Token) -> None:
    _request_path_ctx_var.reset(token)
