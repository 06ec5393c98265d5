from datetime import datetime, timedelta

import pytest

from verification_store import KEY_PREFIX, VerificationStore


@pytest.fixture
def store():
    return VerificationStore(redis_url="", ttl_seconds=60)


def _pending(email="zeynep@example.com", username="zeynep"):
    return {"name": "Zeynep Kaya", "username": username, "email": email, "password": "hash"}


def test_memory_backend_when_redis_url_empty(store):
    assert store.backend == "memory"


def test_falls_back_to_memory_when_redis_unreachable():
    store = VerificationStore(redis_url="redis://127.0.0.1:1/0")
    assert store.backend == "memory"

    store.put("abc", _pending())
    assert store.get("abc")["email"] == "zeynep@example.com"


def test_put_get_delete(store):
    store.put("abc", _pending())

    payload = store.get("abc")
    assert payload["username"] == "zeynep"
    # Dönen sözlük depodaki kaydın kopyasıdır
    payload["username"] = "değişti"
    assert store.get("abc")["username"] == "zeynep"

    assert store.delete("abc") is True
    assert store.get("abc") is None
    assert store.delete("abc") is False


def test_expired_entry_is_not_returned(store):
    store.put("abc", _pending())
    payload, _ = store.memory_store[f"{KEY_PREFIX}abc"]
    store.memory_store[f"{KEY_PREFIX}abc"] = (payload, datetime.now() - timedelta(seconds=1))

    assert store.get("abc") is None
    assert f"{KEY_PREFIX}abc" not in store.memory_store
    assert store.find_by_email("zeynep@example.com") is None


def test_find_by_email_and_username(store):
    store.put("t1", _pending())
    store.put("t2", _pending(email="mehmet@example.com", username="mehmet"))

    token, payload = store.find_by_email("  MEHMET@example.com ")
    assert token == "t2"
    assert payload["username"] == "mehmet"

    token, _ = store.find_by_username("Zeynep")
    assert token == "t1"

    assert store.find_by_email("nobody@example.com") is None
    assert store.find_by_username("nobody") is None


def test_clear(store):
    store.put("t1", _pending())
    store.clear()
    assert store.get("t1") is None
