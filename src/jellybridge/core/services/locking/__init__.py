from .keyed_lock import InProcessKeyedLock, KeyedLock, RedisKeyedLock

__all__ = ["InProcessKeyedLock", "KeyedLock", "RedisKeyedLock"]
