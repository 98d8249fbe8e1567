# bills_dashboard.py
from datetime import date, timedelta

import streamlit as st

from bill_table import results_to_frame
from errors import InvalidArgument
from mt_client import MAX_BILL_LIMIT, MeituanClient

st.set_page_config(page_title="美團外賣 帳單查詢面板", layout="wide")
st.title("🧾 美團外賣 帳單查詢面板")
st.caption("逐店拉取帳單；失敗自動重試，最後列出每間門店的結果")

# ================= 側邊欄：查詢條件 =================
with st.sidebar:
    st.header("查詢條件")
    today = date.today()
    date_range = st.date_input("帳單日期", value=(today - timedelta(days=1), today - timedelta(days=1)))
    limit = st.slider("每頁筆數 (1~200)", 1, MAX_BILL_LIMIT, MAX_BILL_LIMIT)
    max_attempts = st.number_input("每店最多嘗試次數", min_value=1, max_value=10, value=3, step=1)

if isinstance(date_range, (tuple, list)) and len(date_range) == 2:
    start_date, end_date = date_range
else:
    start_date = end_date = date_range[0] if isinstance(date_range, (tuple, list)) else date_range

run = st.button("🔍 查詢帳單", use_container_width=True)

if run:
    try:
        client = MeituanClient.from_env()
    except InvalidArgument as e:
        st.error(f"設定錯誤：{e}（請在 .env 設定 MT_APP_ID / MT_CONSUMER_SECRET）")
        st.stop()
    client.max_attempts = int(max_attempts)

    bar = st.progress(0.0, text="取得門店列表…")

    def on_progress(p: dict):
        bar.progress(p["index"] / max(p["total"], 1), text=f"門店 {p['index'] + 1}/{p['total']}: {p['app_poi_code']}")

    with st.spinner("查詢中…"):
        try:
            out = client.fetch_bills_for_all_poi(start_date, end_date, limit=limit, on_progress=on_progress)
        except Exception as e:
            st.error(f"查詢失敗：{e}")
            st.stop()
    bar.progress(1.0, text="完成")

    df = results_to_frame(out["results"])
    if df.empty:
        st.info("沒有取得任何門店。")
        st.stop()

    failed = int((df["status"] == "failed").sum())
    st.success(f"✅ 共 {len(df)} 間門店，成功 {len(df) - failed}，失敗 {failed}")
    st.dataframe(df, use_container_width=True)

    with st.expander("原始回應"):
        st.json(out["results"])
