"""
Rate-limited logging for relayer warnings.

A message is emitted at most once per interval for each logger and level;
repeats inside the interval are dropped. Safe to call from worker threads.
"""
import logging
import threading
from typing import Dict, Optional

from cachetools import TTLCache

# Configure logger
logger = logging.getLogger(__name__)

# One TTL cache per interval, each holding up to 100 recent message keys
_caches: Dict[int, TTLCache] = {}
_cache_lock = threading.RLock()


def _cache_for(interval: int) -> TTLCache:
    cache = _caches.get(interval)
    if cache is None:
        cache = TTLCache(maxsize=100, ttl=interval)
        _caches[interval] = cache
    return cache


def rate_limited_log(
    message: str,
    level: str = "warning",
    interval: int = 60,
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message with rate limiting, in a thread-safe manner.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between identical logs in seconds
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)

    key = f"{log_instance.name}:{level}:{message}"

    with _cache_lock:
        cache = _cache_for(interval)
        if key in cache:
            return False
        log_method(message)
        cache[key] = True
        return True


def reset_rate_limits() -> None:
    """Forget every suppressed message (for tests)"""
    with _cache_lock:
        _caches.clear()
