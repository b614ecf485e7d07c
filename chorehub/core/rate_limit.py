"""Rate limiting for the ChoreHub API.

Counters live in Redis when it answers at import time, so limits hold across
worker processes.  Otherwise slowapi counts in process memory (development,
tests).  Child PIN logins get the tightest limit: a 4-digit PIN has only
10,000 values.
"""

import logging

import redis as sync_redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from chorehub.config import settings

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = "100/minute"
LOGIN_LIMIT = "10/minute"
PIN_LOGIN_LIMIT = "5/minute"


def _storage_uri() -> str:
    client = sync_redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
    try:
        client.ping()
    except sync_redis.RedisError:
        logger.warning("Rate limiter: Redis unavailable, counting in memory")
        return "memory://"
    finally:
        client.close()
    logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
    return settings.REDIS_URL


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[DEFAULT_LIMIT],
    storage_uri=_storage_uri(),
)
