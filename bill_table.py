# bill_table.py
import pandas as pd

COLUMNS = ["app_poi_code", "status", "records", "error_kind", "error_message", "http_status"]


def _count_records(payload) -> int | None:
    data = payload.get("data") if isinstance(payload, dict) else payload
    if isinstance(data, dict):
        for key in ("list", "records", "bill_list"):
            if isinstance(data.get(key), list):
                return len(data[key])
        return None
    if isinstance(data, list):
        return len(data)
    return None

def results_to_frame(results: list[dict]) -> pd.DataFrame:
    """每間門店一列：成功筆數或失敗原因。"""
    rows = []
    for r in results:
        err = r.get("error")
        rows.append({
            "app_poi_code": r.get("app_poi_code"),
            "status": "failed" if err else "ok",
            "records": None if err else _count_records(r.get("data")),
            "error_kind": err.get("kind") if err else None,
            "error_message": err.get("message") if err else None,
            "http_status": err.get("status") if err else None,
        })
    df = pd.DataFrame(rows, columns=COLUMNS)
    if not df.empty:
        # failed < ok，失敗的排前面
        df = df.sort_values(by=["status", "app_poi_code"], na_position="last").reset_index(drop=True)
    return df
