# sign_util.py
import json, hashlib, re
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import unquote

from errors import InvalidArgument

SIGNATURE_FIELD = "signature"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class SignedRequest:
    url: str
    params: Any
    signature: str


def canonical_json(obj) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

def to_sign_str(v) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, dict):
        return canonical_json(v)
    return str(v)

def safe_decode(s: str) -> str:
    # 無法解碼時保留原字串
    if _BAD_ESCAPE.search(s):
        return s
    try:
        return unquote(s, errors="strict")
    except UnicodeDecodeError:
        return s

def _require_str(name: str, value) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidArgument(f"{name} must be a non-empty string")

def collect_params(request_url: str, params: Mapping | None = None) -> tuple[str, list[tuple[str, str]]]:
    """URL 上的 query 與 params 合併；陣列展開成同 key 的多筆。"""
    base_url, _, query = request_url.partition("?")
    items: list[tuple[str, str]] = []
    for pair in query.split("&") if query else []:
        if not pair:
            continue
        k, _, v = pair.partition("=")
        items.append((safe_decode(k), safe_decode(v)))

    for k, v in (params or {}).items():
        if v is None:
            continue
        values = v if isinstance(v, (list, tuple)) else [v]
        for item in values:
            if item is None:
                continue
            items.append((str(k), to_sign_str(item)))
    return base_url, items

def canonical_string(request_url: str, params: Mapping | None = None, field: str = SIGNATURE_FIELD) -> str:
    """排序後的參數串（不含 secret）。"""
    base_url, items = collect_params(request_url, params)
    items = sorted(kv for kv in items if kv[0] != field)
    return f"{base_url}?" + "&".join(f"{k}={v}" for k, v in items)

def compute_signature(
    request_url: str,
    params: Mapping | None,
    shared_secret: str,
    field: str = SIGNATURE_FIELD,
) -> str:
    _require_str("request_url", request_url)
    _require_str("shared_secret", shared_secret)
    if params is not None and not isinstance(params, Mapping):
        raise InvalidArgument("params must be a mapping")
    raw = canonical_string(request_url, params, field) + shared_secret
    return hashlib.md5(raw.encode("utf-8")).hexdigest()

def sign_request(
    request_url: str,
    params: Mapping | None,
    shared_secret: str,
    field: str = SIGNATURE_FIELD,
) -> SignedRequest:
    sig = compute_signature(request_url, params, shared_secret, field)
    sep = "&" if "?" in request_url else "?"
    return SignedRequest(url=f"{request_url}{sep}{field}={sig}", params=params, signature=sig)
