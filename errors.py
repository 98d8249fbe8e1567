# errors.py
import errno, ssl
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests


class InvalidArgument(ValueError):
    """呼叫端用錯 API（空欄位等），不重試。"""


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    TLS = "tls"
    HTTP = "http"


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    code: str | None = None
    status: int | None = None
    status_text: str | None = None
    response_body: Any = None
    cause: BaseException | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict:
        out = {"kind": self.kind.value, "message": self.message}
        for name in ("code", "status", "status_text", "response_body"):
            val = getattr(self, name)
            if val is not None:
                out[name] = val
        return out

    def __str__(self) -> str:
        if self.status is not None:
            return f"[{self.kind.value}] HTTP {self.status}: {self.message}"
        return f"[{self.kind.value}] {self.message}"


class RetryExhausted(RuntimeError):
    def __init__(self, error: ClassifiedError, attempts: int):
        self.error = error
        self.attempts = attempts
        super().__init__(f"failed after {attempts} attempt(s): {error}")


def _chain(exc: BaseException):
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__

def _errno_name(exc: BaseException) -> str | None:
    for e in _chain(exc):
        no = getattr(e, "errno", None)
        if isinstance(no, int) and no in errno.errorcode:
            return errno.errorcode[no]
        # urllib3 把底層 OSError 放在 reason / args 裡
        for inner in (getattr(e, "reason", None), *getattr(e, "args", ())):
            if isinstance(inner, OSError) and inner.errno in errno.errorcode:
                return errno.errorcode[inner.errno]
    return None

def _is_tls(exc: BaseException) -> bool:
    for e in _chain(exc):
        if isinstance(e, (requests.exceptions.SSLError, ssl.SSLError)):
            return True
        if "certificate" in str(e).lower():
            return True
    return False

def _response_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text

def classify(exc: BaseException) -> ClassifiedError:
    """把任意例外歸類為 transport / tls / http。"""
    if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
        resp = exc.response
        body = _response_body(resp)
        message = body.get("message") if isinstance(body, dict) and body.get("message") else (resp.reason or str(exc))
        return ClassifiedError(
            kind=ErrorKind.HTTP,
            message=str(message),
            code=type(exc).__name__,
            status=resp.status_code,
            status_text=resp.reason,
            response_body=body,
            cause=exc,
        )
    kind = ErrorKind.TLS if _is_tls(exc) else ErrorKind.TRANSPORT
    return ClassifiedError(
        kind=kind,
        message=str(exc) or type(exc).__name__,
        code=_errno_name(exc) or type(exc).__name__,
        cause=exc,
    )
