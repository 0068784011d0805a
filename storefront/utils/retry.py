# storefront/utils/retry.py
from tenacity import retry, stop_after_attempt, stop_after_delay, wait_exponential, retry_if_exception_type
import requests
import redis

#only transport failures, a 4xx/5xx from the gateway is an answer, not a glitch
_HTTP_TRANSIENT = (requests.ConnectionError, requests.Timeout)

#ResponseError (bad script, wrong type) would fail the same way every time
_REDIS_TRANSIENT = (redis.ConnectionError, redis.TimeoutError)


def http_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(_HTTP_TRANSIENT),
    )


def lock_retry(attempts: int = 3, budget_seconds: float = 1.5):
    """
    Retries for the webhook lock. The gateway waits on the webhook answer,
    so the whole retry budget stays short, well under its delivery timeout.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts) | stop_after_delay(budget_seconds),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception_type(_REDIS_TRANSIENT),
    )
