import hashlib

import pytest

from errors import InvalidArgument
from sign_util import canonical_string, collect_params, compute_signature, sign_request

URL = "https://api.example.com/v1/x"


def md5(s: str) -> str:
    return hashlib.md5(s.encode("utf-8")).hexdigest()


def test_end_to_end_example():
    url = f"{URL}?b=2"
    params = {"app_id": "9423", "a": "1"}
    assert canonical_string(url, params) == f"{URL}?a=1&app_id=9423&b=2"
    sig = compute_signature(url, params, "secret")
    assert sig == md5(f"{URL}?a=1&app_id=9423&b=2secret")
    assert len(sig) == 32 and sig == sig.lower()


def test_order_independent_and_deterministic():
    p1 = {"x": "1", "a": "2", "m": ["z", "b"]}
    p2 = {"m": ["b", "z"], "a": "2", "x": "1"}
    s1 = compute_signature(URL, p1, "k")
    assert s1 == compute_signature(URL, p2, "k")
    assert s1 == compute_signature(URL, p1, "k")


def test_secret_change_changes_digest():
    assert compute_signature(URL, {"a": 1}, "secret") != compute_signature(URL, {"a": 1}, "secreT")


def test_array_expands_like_repeated_keys():
    by_array = compute_signature(URL, {"tag": ["b", "a"]}, "s")
    by_repeat = compute_signature(f"{URL}?tag=b", {"tag": "a"}, "s")
    assert by_array == by_repeat
    assert canonical_string(URL, {"tag": ["b", "a"]}) == f"{URL}?tag=a&tag=b"


def test_url_params_only():
    sig = compute_signature(f"{URL}?b=2&a=1", {}, "s")
    assert sig == md5(f"{URL}?a=1&b=2s")


def test_no_params_at_all():
    assert compute_signature(URL, None, "s") == md5(f"{URL}?s")


def test_signature_field_excluded():
    plain = compute_signature(URL, {"a": "1"}, "s")
    assert compute_signature(f"{URL}?signature=old", {"a": "1", "signature": "x"}, "s") == plain
    assert compute_signature(URL, {"a": "1", "sig": "x"}, "s", field="sig") == plain


def test_none_values_dropped_and_scalars_stringified():
    assert canonical_string(URL, {"a": None, "b": 3, "c": True, "d": ["x", None]}) == f"{URL}?b=3&c=true&d=x"


def test_query_value_keeps_text_after_second_equals():
    _, items = collect_params(f"{URL}?a=b=c&k=")
    assert items == [("a", "b=c"), ("k", "")]
    assert compute_signature(f"{URL}?a=b=c", {}, "s") == md5(f"{URL}?a=b=cs")


def test_query_is_percent_decoded_with_raw_fallback():
    _, items = collect_params(f"{URL}?name=%E7%BE%8E%E5%9B%A2&bad=%zz1&weird=%FF&plus=a+b")
    assert ("name", "美团") in items
    assert ("bad", "%zz1") in items
    assert ("weird", "%FF") in items
    assert ("plus", "a+b") in items


def test_sort_is_ordinal_not_locale():
    # 大寫字母的 code point 小於小寫
    assert canonical_string(URL, {"b": "1", "B": "1", "a": "2"}) == f"{URL}?B=1&a=2&b=1"
    assert canonical_string(URL, {"k": ["b", "B", "a"]}) == f"{URL}?k=B&k=a&k=b"


@pytest.mark.parametrize("url,secret", [("", "s"), (URL, ""), (None, "s"), (URL, 123)])
def test_invalid_arguments(url, secret):
    with pytest.raises(InvalidArgument):
        compute_signature(url, {}, secret)


def test_sign_request_appends_signature():
    params = {"a": "1"}
    signed = sign_request(f"{URL}?b=2", params, "s")
    assert signed.url == f"{URL}?b=2&signature={signed.signature}"
    assert signed.signature == compute_signature(f"{URL}?b=2", params, "s")
    assert signed.params is params
    assert params == {"a": "1"}

    bare = sign_request(URL, params, "s")
    assert bare.url == f"{URL}?signature={bare.signature}"


def test_signed_url_signature_matches():
    from urllib.parse import parse_qs, urlsplit

    signed = sign_request(f"{URL}?x=1", {"y": "2"}, "s")
    qs = parse_qs(urlsplit(signed.url).query)
    assert qs["signature"] == [compute_signature(f"{URL}?x=1", {"y": "2"}, "s")]
    # 把帶簽名的 URL 再算一次，簽名欄位不參與
    assert compute_signature(signed.url, {"y": "2"}, "s") == signed.signature
