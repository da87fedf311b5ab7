from typing import Dict, Type

from stampfeed.stream.client import StreamClient

_REGISTRY: Dict[str, Type[StreamClient]] = {}


def register(name: str):
    def deco(cls):
        _REGISTRY[name] = cls
        return cls

    return deco


def get(name: str) -> Type[StreamClient]:
    # 백엔드 모듈 import 시 등록됨
    import stampfeed.stream.bitstamp_ws  # noqa: F401
    import stampfeed.stream.pusher  # noqa: F401

    if name not in _REGISTRY:
        raise KeyError(f"Stream backend '{name}' not found. Registered: {list(_REGISTRY)}")
    return _REGISTRY[name]


def available() -> list[str]:
    import stampfeed.stream.bitstamp_ws  # noqa: F401
    import stampfeed.stream.pusher  # noqa: F401

    return sorted(_REGISTRY)
