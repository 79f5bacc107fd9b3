import time

from flask import current_app

# --- Leaderboard cache ---

DEFAULT_LEADERBOARD_CACHE_TTL = 10.0  # seconds

# key: competition id
# value: (entries, timestamp)
LEADERBOARD_CACHE: dict = {}


def _ttl() -> float:
    try:
        return float(current_app.config.get("LEADERBOARD_CACHE_TTL", DEFAULT_LEADERBOARD_CACHE_TTL))
    except (RuntimeError, TypeError, ValueError):
        return DEFAULT_LEADERBOARD_CACHE_TTL


def get_cached_leaderboard(key):
    """
    Return cached leaderboard entries if still valid.
    """
    ttl = _ttl()
    if ttl <= 0:
        return None

    entry = LEADERBOARD_CACHE.get(key)
    if not entry:
        return None

    entries, timestamp = entry
    if (time.time() - timestamp) > ttl:
        LEADERBOARD_CACHE.pop(key, None)
        return None

    # Callers decorate rows (rank, finalist flags); hand out copies
    return [dict(e) for e in entries]


def set_cached_leaderboard(key, entries):
    """
    Store leaderboard entries in cache.
    """
    LEADERBOARD_CACHE[key] = ([dict(e) for e in entries], time.time())


def invalidate_leaderboard_cache(key=None):
    """Clear one competition's cached entries, or all of them."""
    if key is None:
        LEADERBOARD_CACHE.clear()
    else:
        LEADERBOARD_CACHE.pop(key, None)
