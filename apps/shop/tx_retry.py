import logging
import time
from functools import wraps

from django.db import DatabaseError

from .exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)

# PostgreSQL: serialization failure, deadlock, lock_timeout / NOWAIT
PG_RETRY_ERRCODES = {"40001", "40P01", "55P03"}


def _pgcode_from(exc: Exception):
    code = getattr(exc, "pgcode", None) or getattr(exc, "sqlstate", None)
    if code:
        return code
    cause = getattr(exc, "__cause__", None)
    return getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)


def is_retryable(exc: Exception) -> bool:
    if isinstance(exc, ConcurrencyConflict):
        return True
    code = _pgcode_from(exc)
    if code and code in PG_RETRY_ERRCODES:
        return True
    msg = str(exc).lower()
    return any(k in msg for k in ("deadlock detected", "could not serialize access", "lock timeout"))


def surface_transient_errors(fn):
    """Turn a retryable ``DatabaseError`` into ``ConcurrencyConflict``.

    Apply outside ``transaction.atomic`` so the rollback has already happened.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except DatabaseError as exc:
            if not is_retryable(exc):
                raise
            logger.warning(f"{fn.__name__} hit a transient lock failure: {exc}")
            raise ConcurrencyConflict(str(exc)) from exc
    return wrapper


def retry_on_tx_failure(max_attempts=3, backoff=0.05):
    """Caller-side retry. The order core itself never retries."""
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except Exception as e:
                    if attempt >= max_attempts or not is_retryable(e):
                        raise
                    logger.info(f"[retry] {fn.__name__} attempt {attempt}/{max_attempts}: {e}")
                    time.sleep(backoff * attempt)
        return wrapper
    return deco
