# http_client.py
import logging
from typing import Any

import requests

from retry_util import DEFAULT_MAX_ATTEMPTS, Result, invoke_with_retry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 30
DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
}


class HttpClient:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SEC, verify: bool = True, headers: dict | None = None):
        self.timeout = timeout
        self.session = requests.Session()
        # 是否驗證憑證由呼叫端決定
        self.session.verify = verify
        self.session.headers.update(DEFAULT_HEADERS)
        self.session.headers.update(headers or {})

    def request(self, method: str, url: str, **kwargs) -> Any:
        kwargs.setdefault("timeout", self.timeout)
        resp = self.session.request(method, url, **kwargs)
        logger.debug("%s %s -> HTTP %s", method, resp.url, resp.status_code)
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def get_json(self, url: str, params: dict | None = None, headers: dict | None = None) -> Any:
        return self.request("GET", url, params=params, headers=headers)

    def post_json(self, url: str, data=None, json=None, params: dict | None = None, headers: dict | None = None) -> Any:
        return self.request("POST", url, data=data, json=json, params=params, headers=headers)

    def put_json(self, url: str, data=None, json=None, params: dict | None = None, headers: dict | None = None) -> Any:
        return self.request("PUT", url, data=data, json=json, params=params, headers=headers)

    def call(self, method: str, url: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS, **kwargs) -> Result:
        """單次請求包進重試；回傳 Success / Failure，不丟例外。"""
        return invoke_with_retry(
            lambda: self.request(method, url, **kwargs),
            max_attempts,
            label=f"{method} {url.split('?', 1)[0]}",
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
