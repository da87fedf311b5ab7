# src/stampfeed/settings.py
from __future__ import annotations
import json
import os
from typing import Dict, Literal, Optional

import pydantic
from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from stampfeed.errors import DecodeError, ResourceError
from stampfeed.exchanges.bitstamp import BASE
from stampfeed.logging_config import to_level
from stampfeed.stream.bitstamp_ws import WS_URL
from stampfeed.stream.client import POLL_INTERVAL_S, RETRY_DELAY_S
from stampfeed.stream.pusher import APP_KEY, PUSHER_HOST, pusher_url


class ApiCfg(BaseModel):
    # 공개 API 만 쓰므로 요청 서명에는 쓰이지 않는다
    user: str | None = None
    password: str | None = None


class RestCfg(BaseModel):
    base_url: str = BASE
    timeout_s: int = 10


class StreamCfg(BaseModel):
    backend: Literal["ws", "pusher"] = "ws"
    ws_url: str = WS_URL
    pusher_key: str = APP_KEY
    pusher_host: str = PUSHER_HOST
    retry_delay_s: float = RETRY_DELAY_S
    poll_interval_s: float = POLL_INTERVAL_S

    def endpoint(self) -> str:
        if self.backend == "pusher":
            return pusher_url(self.pusher_key, self.pusher_host)
        return self.ws_url


class FeedCfg(BaseModel):
    symbol: str = "btcusd"
    queue_size: int = 100


def _level_name(v: str) -> str:
    to_level(v)  # 모르는 이름이면 ValueError
    return v.strip().upper()


class LogCfg(BaseModel):
    log_dir: str = "logs"
    filename: str = "stampfeed.log"
    console_level: str = "INFO"
    file_level: str = "DEBUG"
    # 로거 이름별 레벨 (예: {"stream": "DEBUG"})
    levels: Dict[str, str] = {}

    @field_validator("console_level", "file_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        return _level_name(v)

    @field_validator("levels")
    @classmethod
    def _known_levels(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {name: _level_name(level) for name, level in v.items()}


class Settings(BaseSettings):
    env: str = "dev"
    api: ApiCfg = ApiCfg()
    rest: RestCfg = RestCfg()
    stream: StreamCfg = StreamCfg()
    feed: FeedCfg = FeedCfg()
    log: LogCfg = LogCfg()

    # 예: STAMPFEED_STREAM__BACKEND=pusher
    model_config = SettingsConfigDict(
        env_prefix="STAMPFEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        cfg: dict = {}
        if path:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    cfg = yaml.safe_load(f) or {}
            except OSError as e:
                raise ResourceError(f"cannot read config {path}: {e}") from e

        # 환경변수 오버레이 → YAML 값보다 우선
        eu = os.getenv("BITSTAMP_USER")
        ep = os.getenv("BITSTAMP_PASSWORD")
        if eu or ep:
            cfg.setdefault("api", {})
            if eu:
                cfg["api"]["user"] = eu
            if ep:
                cfg["api"]["password"] = ep

        try:
            return cls(**cfg)
        except pydantic.ValidationError as e:
            raise DecodeError(f"invalid config {path or '<defaults>'}: {e}") from e


def load_credentials(path: str) -> ApiCfg:
    """JSON 자격증명 파일 {"User": ..., "Password": ...} (키 대소문자 무시)"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise ResourceError(f"cannot read credentials {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DecodeError(f"credentials {path}: {e}") from e
    if not isinstance(raw, dict):
        raise DecodeError(f"credentials {path}: expected a JSON object")
    lowered = {str(k).lower(): v for k, v in raw.items()}
    return ApiCfg(user=lowered.get("user"), password=lowered.get("password"))
