"""Redis-backed leaky-bucket throttle for quiz submission endpoints.

Algorithm
---------
Each bucket is a Redis hash holding the number of *tokens* (remaining
submissions) and the timestamp of the last refill. Tokens leak back at
``RPM / 60`` per second up to ``BURST``. A submission is allowed only when a
token is available; otherwise the request gets a 429. Buckets are per
student, so a double-clicked submit button cannot race itself.

Usage as a FastAPI dependency
-----------------------------
The dependency lives in ``quizassist.api.deps.require_submit_rate_limit``:

```python
@router.post("/{quiz_id}/submit")
def submit(..., _rl=Depends(require_submit_rate_limit)):
    ...
```
"""

import logging
import time

import redis

from quizassist.config import settings

logger = logging.getLogger(__name__)

_pool: redis.ConnectionPool | None = None

# Executed atomically inside Redis.
# KEYS[1] = bucket key
# ARGV[1] = max tokens (burst)
# ARGV[2] = refill rate (tokens per second)
# ARGV[3] = current timestamp (float seconds)
# Returns 1 if the request is allowed, 0 if rejected.
_LUA_SCRIPT = """
local key         = KEYS[1]
local max_tokens  = tonumber(ARGV[1])
local refill_rate = tonumber(ARGV[2])
local now         = tonumber(ARGV[3])

local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
local tokens      = tonumber(bucket[1])
local last_refill = tonumber(bucket[2])

if tokens == nil then
    tokens = max_tokens
    last_refill = now
end

local elapsed = math.max(0, now - last_refill)
tokens = math.min(max_tokens, tokens + elapsed * refill_rate)

local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end

redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
redis.call('EXPIRE', key, 300)
return allowed
"""


def _get_redis() -> redis.Redis:
    global _pool
    if _pool is None:
        _pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=10,
        )
    return redis.Redis(connection_pool=_pool)


def bucket_key(user_id) -> str:
    return f"rl:submit:u:{user_id}"


def check(key: str) -> bool:
    """Return True if the request should be allowed."""
    rpm = settings.RATE_LIMIT_SUBMIT_RPM
    burst = settings.RATE_LIMIT_SUBMIT_BURST
    if rpm <= 0:
        return True  # throttle disabled

    refill_rate = rpm / 60.0
    try:
        r = _get_redis()
        allowed = r.eval(_LUA_SCRIPT, 1, key, burst, refill_rate, time.time())
        return bool(allowed)
    except redis.RedisError as e:
        logger.warning("Rate-limiter Redis error (allowing request): %s", e)
        return True  # fail-open

