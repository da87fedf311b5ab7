# src/stampfeed/logging_config.py
"""
콘솔 + 회전 파일 로깅. 프로세스당 한 번만 설치된다.
레벨은 int 또는 이름("DEBUG", "warning" ...) 으로 받는다 → Settings.log 에서 바로 넘길 수 있음.
"""
from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional, Union

if TYPE_CHECKING:
    from stampfeed.settings import LogCfg

Level = Union[int, str]

FILE_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s"
CONSOLE_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# 우리 쪽 로거 기본 레벨
PROJECT_LEVELS: dict[str, Level] = {
    "stream": logging.INFO,
    "feed": logging.INFO,
    "bitstamp": logging.INFO,
    "cli": logging.INFO,
}
# 서드파티 소음
QUIET = ("urllib3", "websockets")

_MARKER = "_stampfeed_logging_installed"


def to_level(level: Level) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def installed() -> bool:
    return bool(getattr(logging.getLogger(), _MARKER, False))


def setup(
    log_dir: str = "logs",
    console_level: Level = logging.INFO,
    file_level: Level = logging.DEBUG,
    filename: str = "stampfeed.log",
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
    levels: Optional[Mapping[str, Level]] = None,
) -> None:
    """
    levels: 로거 이름 → 레벨. PROJECT_LEVELS 위에 덮어쓴다.
    이미 설치돼 있으면 아무것도 하지 않는다.
    """
    if installed():
        return
    console = to_level(console_level)
    to_file = to_level(file_level)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    root = logging.getLogger()
    root.setLevel(min(console, to_file))

    ch = logging.StreamHandler()
    ch.setLevel(console)
    ch.setFormatter(logging.Formatter(CONSOLE_FMT))
    root.addHandler(ch)

    fh = RotatingFileHandler(
        Path(log_dir) / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    fh.setLevel(to_file)
    fh.setFormatter(logging.Formatter(FILE_FMT))
    root.addHandler(fh)

    for name in QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, level in {**PROJECT_LEVELS, **(levels or {})}.items():
        logging.getLogger(name).setLevel(to_level(level))

    setattr(root, _MARKER, True)


def install(cfg: "LogCfg") -> None:
    """Settings.log 로 설치"""
    setup(
        log_dir=cfg.log_dir,
        console_level=cfg.console_level,
        file_level=cfg.file_level,
        filename=cfg.filename,
        levels=cfg.levels,
    )
