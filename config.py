# config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from errors import InvalidArgument

load_dotenv()

_TRUE = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE

def _env_num(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise InvalidArgument(f"{name} is not a valid {cast.__name__}: {raw!r}")


@dataclass(frozen=True)
class HttpConfig:
    timeout: float = 30.0
    max_attempts: int = 3
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> "HttpConfig":
        return cls(
            timeout=_env_num("HTTP_TIMEOUT_SEC", 30.0, float),
            max_attempts=_env_num("HTTP_MAX_ATTEMPTS", 3, int),
            verify_ssl=_env_bool("HTTP_VERIFY_SSL", True),
        )


@dataclass(frozen=True)
class MeituanConfig:
    app_id: str
    consumer_secret: str

    def __post_init__(self):
        if not self.app_id:
            raise InvalidArgument("app_id 不能為空")
        if not self.consumer_secret:
            raise InvalidArgument("consumer_secret 不能為空")

    def __repr__(self) -> str:
        return f"MeituanConfig(app_id={self.app_id!r}, consumer_secret='***')"

    @classmethod
    def from_env(cls) -> "MeituanConfig":
        return cls(
            app_id=os.getenv("MT_APP_ID") or "",
            consumer_secret=os.getenv("MT_CONSUMER_SECRET") or "",
        )


@dataclass(frozen=True)
class PushConfig:
    url_template: str
    bearer_token: str
    item_delay: float = 1.0

    def __post_init__(self):
        if not self.url_template:
            raise InvalidArgument("url_template 不能為空")
        if not self.bearer_token:
            raise InvalidArgument("bearer_token 不能為空")
        if self.item_delay < 0:
            raise InvalidArgument("item_delay 不能為負數")

    def __repr__(self) -> str:
        return f"PushConfig(url_template={self.url_template!r}, bearer_token='***', item_delay={self.item_delay!r})"

    @classmethod
    def from_env(cls) -> "PushConfig":
        return cls(
            url_template=os.getenv("PUSH_URL_TEMPLATE") or "",
            bearer_token=os.getenv("PUSH_BEARER_TOKEN") or "",
            item_delay=_env_num("PUSH_ITEM_DELAY_SEC", 1.0, float),
        )
