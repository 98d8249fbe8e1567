# mt_client.py
import os, re, math, time, json, logging
from datetime import date, datetime
from typing import Any, Callable

from config import HttpConfig, MeituanConfig
from errors import InvalidArgument
from http_client import HttpClient
from retry_util import DEFAULT_MAX_ATTEMPTS, invoke_with_retry
from sign_util import compute_signature

logger = logging.getLogger(__name__)

GET_POI_IDS_URL = "https://waimaiopen.meituan.com/api/v1/poi/getids"
GET_BILL_LIST_URL = "https://waimaiopen.meituan.com/api/v1/wm/bill/list"
SIG_FIELD = "sig"
MAX_BILL_LIMIT = 200

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}

_NUMERIC = re.compile(r"^-?\d+(?:\.\d+)?$")


def now_ts() -> str:
    return str(int(time.time()))

def _epoch(dt: datetime) -> str:
    return str(int(dt.timestamp()))

def to_unix_seconds(value, field_name: str) -> str:
    """數字 / datetime / 日期字串 → 秒級時間戳字串；日期取當地零點。"""
    if value is None:
        raise InvalidArgument(f"{field_name} 不能為空")
    if isinstance(value, datetime):
        return _epoch(value)
    if isinstance(value, date):
        return _epoch(datetime(value.year, value.month, value.day))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise InvalidArgument(f"{field_name} 不是有效數字: {value!r}")
        return str(int(value // 1))

    s = str(value).strip()
    if not s:
        raise InvalidArgument(f"{field_name} 不能為空字串")
    if _NUMERIC.match(s):
        num = float(s)
        if not math.isfinite(num):
            raise InvalidArgument(f"{field_name} 不是有效數字: {s!r}")
        return str(int(num // 1))
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        raise InvalidArgument(f"{field_name} 無法解析為有效日期: {s!r}")
    return _epoch(parsed.replace(hour=0, minute=0, second=0, microsecond=0))

def _as_int(value, field_name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and re.fullmatch(r"\s*-?\d+\s*", value):
        return int(value)
    raise InvalidArgument(f"{field_name} 需為整數: {value!r}")

def normalize_timestamp(value=None) -> str:
    if value is None:
        return now_ts()
    if isinstance(value, (datetime, int, float)) and not isinstance(value, bool):
        return to_unix_seconds(value, "timestamp")
    s = str(value).strip()
    if not s:
        raise InvalidArgument("timestamp cannot be empty")
    if not _NUMERIC.match(s):
        raise InvalidArgument("timestamp must be a number or datetime")
    return to_unix_seconds(s, "timestamp")

def normalize_extra(extra: dict | None) -> dict:
    if not isinstance(extra, dict):
        return {}
    return {k: str(v) for k, v in extra.items() if v is not None}

def normalize_poi_ids(ids) -> list[str]:
    if not isinstance(ids, (list, tuple)):
        return []
    out = []
    for x in ids:
        s = "" if x is None else str(x).strip()
        if s:
            out.append(s)
    return out

_POI_KEYS = ("poi_ids", "app_poi_codes", "list", "pois")

def extract_poi_ids(response) -> list:
    """在常見欄位中找第一個非空的門店 ID 陣列。"""
    if not response:
        return []
    if isinstance(response, list):
        return response
    if not isinstance(response, dict):
        return []

    candidates = []
    data = response.get("data")
    if isinstance(data, list):
        candidates.append(data)
    if isinstance(data, dict):
        candidates.extend(data.get(k) for k in _POI_KEYS)
    candidates.extend(response.get(k) for k in _POI_KEYS if k != "pois")
    for c in candidates:
        if isinstance(c, list) and c:
            return c
    return []


class MeituanClient:
    def __init__(self, config: MeituanConfig, http: HttpClient | None = None, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.config = config
        self.http = http or HttpClient()
        self.max_attempts = max_attempts

    @classmethod
    def from_env(cls) -> "MeituanClient":
        http_cfg = HttpConfig.from_env()
        return cls(
            MeituanConfig.from_env(),
            HttpClient(timeout=http_cfg.timeout, verify=http_cfg.verify_ssl),
            max_attempts=http_cfg.max_attempts,
        )

    def get_signed(self, url: str, params: dict, headers: dict | None = None) -> Any:
        sig = compute_signature(url, params, self.config.consumer_secret, field=SIG_FIELD)
        return self.http.get_json(url, params={**params, SIG_FIELD: sig}, headers={**FORM_HEADERS, **(headers or {})})

    def get_poi_ids(self, timestamp=None, headers: dict | None = None, extra_params: dict | None = None) -> Any:
        params = {
            "app_id": str(self.config.app_id),
            "timestamp": normalize_timestamp(timestamp),
            **normalize_extra(extra_params),
        }
        return self.get_signed(GET_POI_IDS_URL, params, headers)

    def get_bill_list(
        self,
        app_poi_code,
        start_date,
        end_date,
        offset: int = 0,
        limit: int = MAX_BILL_LIMIT,
        timestamp=None,
        headers: dict | None = None,
        extra_params: dict | None = None,
    ) -> Any:
        if not app_poi_code:
            raise InvalidArgument("app_poi_code 不能為空")
        offset = _as_int(offset, "offset")
        limit = _as_int(limit, "limit")
        if offset < 0:
            raise InvalidArgument("offset 不能為負數")
        if not 1 <= limit <= MAX_BILL_LIMIT:
            raise InvalidArgument(f"limit 需介於 1~{MAX_BILL_LIMIT}")
        params = {
            "app_id": str(self.config.app_id),
            "app_poi_code": str(app_poi_code),
            "start_date": to_unix_seconds(start_date, "start_date"),
            "end_date": to_unix_seconds(end_date, "end_date"),
            "offset": str(offset),
            "limit": str(limit),
            "timestamp": normalize_timestamp(timestamp),
            **normalize_extra(extra_params),
        }
        return self.get_signed(GET_BILL_LIST_URL, params, headers)

    def fetch_bills_for_all_poi(
        self,
        start_date,
        end_date,
        offset: int = 0,
        limit: int = MAX_BILL_LIMIT,
        extract_poi_ids: Callable[[Any], list] = extract_poi_ids,
        on_progress: Callable[[dict], None] | None = None,
        bill_headers: dict | None = None,
        bill_extra_params: dict | None = None,
    ) -> dict:
        """先取所有門店，再逐店查帳單；單店失敗不影響其他門店。"""
        if start_date is None or end_date is None:
            raise InvalidArgument("start_date 和 end_date 不能為空")

        poi_response = self.get_poi_ids()
        poi_ids = normalize_poi_ids(extract_poi_ids(poi_response))
        logger.info("found %d poi(s)", len(poi_ids))

        results = []
        for i, code in enumerate(poi_ids):
            if on_progress:
                on_progress({"app_poi_code": code, "index": i, "total": len(poi_ids)})
            outcome = invoke_with_retry(
                lambda code=code: self.get_bill_list(
                    code, start_date, end_date, offset, limit,
                    headers=bill_headers, extra_params=bill_extra_params,
                ),
                self.max_attempts,
                label=f"bill_list[{code}]",
            )
            if outcome.ok:
                results.append({"app_poi_code": code, "data": outcome.payload})
            else:
                results.append({"app_poi_code": code, "error": outcome.error.to_dict()})

        failed = sum(1 for r in results if "error" in r)
        logger.info("bills fetched: %d ok, %d failed", len(results) - failed, failed)
        return {"poi_ids": poi_ids, "results": results, "raw_poi_response": poi_response}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    client = MeituanClient.from_env()
    start = os.getenv("MT_START_DATE") or date.today().isoformat()
    end = os.getenv("MT_END_DATE") or start
    out = client.fetch_bills_for_all_poi(
        start, end,
        on_progress=lambda p: print(f"正在查詢門店 {p['index'] + 1}/{p['total']}: {p['app_poi_code']}"),
    )
    print("門店數量:", len(out["poi_ids"]))
    print(json.dumps(out["results"], ensure_ascii=False, indent=2))
