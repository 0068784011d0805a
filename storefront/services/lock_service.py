import uuid

import redis
from storefront.utils.retry import lock_retry
from storefront.utils.settings import REDIS_URL, WEBHOOK_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#compare-and-delete in LUA, redis runs the script atomically
#nobody can sneak in between GET and DEL
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Short-lived per-payment lock so concurrent deliveries of the same
    webhook do not run reconciliation side by side.
    The orders.payment_gateway_id unique constraint stays the final guard.
    """

    def __init__(self, url: str | None = None, ttl: int | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl or WEBHOOK_LOCK_TTL_SECONDS

    @staticmethod
    def _key(payment_id: str) -> str:
        return f"payment:{payment_id}:lock"

    @lock_retry()
    def acquire_payment_lock(self, payment_id: str) -> str | None:
        """Returns the owner token when acquired, None when someone else holds it."""
        key = self._key(payment_id)
        token = uuid.uuid4().hex
        logger.info(f"Acquire lock {key}")
        #SET payment:123:lock "<token>" NX EX 60
        acquired = self.redis.set(
            name=key,
            value=token,
            nx=True,
            ex=self.ttl,  # expires by itself if the holder dies
        )
        return token if acquired else None

    @lock_retry()
    def release_payment_lock(self, payment_id: str, token: str) -> bool:
        key = self._key(payment_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
