import pytest
from django.db import DatabaseError, OperationalError

from apps.shop.exceptions import ConcurrencyConflict, ValidationFailed
from apps.shop.tx_retry import is_retryable, retry_on_tx_failure, surface_transient_errors


class PgError(OperationalError):
    def __init__(self, msg, pgcode=None):
        super().__init__(msg)
        self.pgcode = pgcode


@pytest.mark.parametrize("code", ["40001", "40P01", "55P03"])
def test_lock_failures_are_retryable(code):
    assert is_retryable(PgError("tx failed", pgcode=code))


def test_code_is_read_from_cause():
    wrapped = DatabaseError("wrapped")
    wrapped.__cause__ = PgError("inner", pgcode="40P01")
    assert is_retryable(wrapped)


def test_message_fallback():
    assert is_retryable(OperationalError("deadlock detected"))
    assert not is_retryable(OperationalError("relation does not exist"))


def test_business_errors_are_not_retryable():
    assert not is_retryable(ValidationFailed("bad"))
    assert is_retryable(ConcurrencyConflict("lock timeout"))


def test_surface_transient_errors_converts_lock_failures():
    @surface_transient_errors
    def deadlocks():
        raise PgError("deadlock detected", pgcode="40P01")

    with pytest.raises(ConcurrencyConflict) as exc:
        deadlocks()
    assert exc.value.transient is True
    assert exc.value.http_status == 409
    assert isinstance(exc.value.__cause__, PgError)


def test_surface_transient_errors_passes_other_errors_through():
    @surface_transient_errors
    def broken():
        raise PgError("syntax error", pgcode="42601")

    with pytest.raises(PgError):
        broken()


def test_retry_until_success():
    calls = []

    @retry_on_tx_failure(max_attempts=3, backoff=0)
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConcurrencyConflict("busy")
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3


def test_retry_gives_up_after_max_attempts():
    calls = []

    @retry_on_tx_failure(max_attempts=2, backoff=0)
    def always_busy():
        calls.append(1)
        raise ConcurrencyConflict("busy")

    with pytest.raises(ConcurrencyConflict):
        always_busy()
    assert len(calls) == 2


def test_no_retry_for_business_errors():
    calls = []

    @retry_on_tx_failure(max_attempts=5, backoff=0)
    def invalid():
        calls.append(1)
        raise ValidationFailed("nope")

    with pytest.raises(ValidationFailed):
        invalid()
    assert len(calls) == 1
