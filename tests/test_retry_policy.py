import threading
import pytest

from mealprep.core.errors import OperationCancelled
from mealprep.services.retry import RetryPolicy, check_cancelled


def test_defaults_from_settings():
    policy = RetryPolicy()
    assert policy.max_retries == 2
    assert policy.max_attempts == 3
    assert policy.backoff_seconds == 1.0


def test_has_retry():
    policy = RetryPolicy(max_retries=2)
    assert [policy.has_retry(a) for a in range(3)] == [True, True, False]
    assert RetryPolicy(max_retries=0).has_retry(0) is False


def test_backoff_doubles():
    policy = RetryPolicy(backoff_seconds=1.5)
    assert [policy.backoff(a) for a in range(4)] == [1.5, 3.0, 6.0, 12.0]


def test_simplify_keeps_first_three_restrictions_and_drops_cuisine():
    policy = RetryPolicy()
    original = {
        "recipe_name": "Curry",
        "cuisine": "Thai",
        "dietary_restrictions": ["vegan", "nut-free", "soy-free", "halal"],
        "servings": 2,
    }
    simplified = policy.simplify(original)
    assert simplified == {
        "recipe_name": "Curry",
        "cuisine": None,
        "dietary_restrictions": ["vegan", "nut-free", "soy-free"],
        "servings": 2,
    }
    # The original input is left alone
    assert original["cuisine"] == "Thai"
    assert len(original["dietary_restrictions"]) == 4


def test_simplify_without_restrictions():
    simplified = RetryPolicy().simplify({"recipe_name": "Soup", "dietary_restrictions": None})
    assert simplified["dietary_restrictions"] == []


def test_wait_uses_injected_sleep():
    sleeps = []
    policy = RetryPolicy(backoff_seconds=2, sleep=sleeps.append)
    assert policy.wait(0) == 2
    assert policy.wait(1) == 4
    assert sleeps == [2, 4]


def test_wait_with_cancel_event_returns_after_delay():
    policy = RetryPolicy(backoff_seconds=0.01)
    assert policy.wait(0, threading.Event()) == 0.01


def test_wait_aborts_when_cancelled():
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelled):
        RetryPolicy(backoff_seconds=60).wait(3, cancel)


def test_check_cancelled():
    check_cancelled(None)
    event = threading.Event()
    check_cancelled(event)
    event.set()
    with pytest.raises(OperationCancelled):
        check_cancelled(event)
