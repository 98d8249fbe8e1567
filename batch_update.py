# batch_update.py
import os, json, time, logging
from typing import Any, Callable

from config import HttpConfig, PushConfig
from errors import InvalidArgument
from http_client import HttpClient
from retry_util import DEFAULT_MAX_ATTEMPTS

logger = logging.getLogger(__name__)


def bearer_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}

def build_url(url_template: str, item: dict) -> str:
    """url_template 用 {欄位} 取 item 的值，例如 .../records/{id}?value={value}"""
    try:
        return url_template.format_map(item)
    except (KeyError, IndexError, ValueError) as e:
        raise InvalidArgument(f"url_template 無法套用 item {item!r}: {e}")


class BatchUpdater:
    def __init__(self, config: PushConfig, http: HttpClient | None = None, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.config = config
        self.http = http or HttpClient()
        self.max_attempts = max_attempts

    @classmethod
    def from_env(cls) -> "BatchUpdater":
        http_cfg = HttpConfig.from_env()
        return cls(
            PushConfig.from_env(),
            HttpClient(timeout=http_cfg.timeout, verify=http_cfg.verify_ssl),
            max_attempts=http_cfg.max_attempts,
        )

    def update_one(self, item: dict, body: Any = None):
        url = build_url(self.config.url_template, item)
        return self.http.call(
            "PUT", url, self.max_attempts,
            json=body,
            headers=bearer_headers(self.config.bearer_token),
        )

    def run(
        self,
        items: list[dict],
        body_for: Callable[[dict], Any] | None = None,
        on_progress: Callable[[dict], None] | None = None,
        sleep: Callable[[float], Any] | None = None,
    ) -> dict:
        """逐筆 PUT；每筆各自重試，筆與筆之間固定間隔，失敗不中斷。"""
        sleep = sleep or time.sleep
        results = {"success": [], "failed": []}
        total = len(items)
        for i, item in enumerate(items):
            if on_progress:
                on_progress({"item": item, "index": i, "total": total})
            outcome = self.update_one(item, body_for(item) if body_for else None)
            if outcome.ok:
                results["success"].append({"item": item, "result": outcome.payload, "attempts": outcome.attempt_count})
            else:
                results["failed"].append({"item": item, "error": outcome.error.to_dict(), "attempts": outcome.attempt_count})
            # 避免請求過於頻繁
            if i < total - 1 and self.config.item_delay > 0:
                sleep(self.config.item_delay)

        logger.info("batch update done: %d ok, %d failed", len(results["success"]), len(results["failed"]))
        return results


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    items_file = os.getenv("PUSH_ITEMS_FILE") or "items.json"
    with open(items_file, "r", encoding="utf-8") as f:
        items = json.load(f)
    out = BatchUpdater.from_env().run(
        items,
        on_progress=lambda p: print(f"正在更新 {p['index'] + 1}/{p['total']}: {p['item']}"),
    )
    print(f"成功: {len(out['success'])} 筆，失敗: {len(out['failed'])} 筆")
    for r in out["failed"]:
        print(f"- {r['item']}: [{r['error']['kind']}] {r['error']['message']}")
