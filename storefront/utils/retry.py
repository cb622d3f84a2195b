# storefront/utils/retry.py
import requests
import stripe
from redis.exceptions import RedisError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential


def _transient(errors, first_wait: float, max_wait: float, attempts: int = 3):
    """Retry only on `errors`; the last failure is re-raised unchanged."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=first_wait, min=first_wait, max=max_wait),
        retry=retry_if_exception_type(errors),
    )


def http_retry():
    # product-service lookups
    return _transient(requests.RequestException, 0.3, 3)


def redis_retry():
    return _transient(RedisError, 0.2, 2)


def stripe_retry():
    # connection errors only; card and validation errors are final
    return _transient(stripe.APIConnectionError, 0.5, 4)
