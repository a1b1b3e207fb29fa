from cachelib import SimpleCache

from school_app.sessions import SessionManager


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_manager(idle_timeout=60):
    clock = FakeClock()
    return SessionManager(SimpleCache(), idle_timeout=idle_timeout, clock=clock), clock


def test_create_and_resolve():
    sessions, _ = make_manager()
    token = sessions.create(7)
    assert len(token) >= 40
    assert sessions.resolve(token) == 7


def test_tokens_are_unique_and_independent():
    sessions, _ = make_manager()
    a = sessions.create(1)
    b = sessions.create(2)
    assert a != b
    sessions.destroy(a)
    assert sessions.resolve(a) is None
    assert sessions.resolve(b) == 2


def test_token_is_not_stored_in_clear():
    store = SimpleCache()
    sessions = SessionManager(store)
    token = sessions.create(3)
    assert store.get(f"session:{token}") is None
    assert store.get(sessions._key(token))["user_id"] == 3


def test_unknown_and_empty_tokens_resolve_to_none():
    sessions, _ = make_manager()
    assert sessions.resolve("nope") is None
    assert sessions.resolve("") is None
    assert sessions.resolve(None) is None


def test_logout_is_idempotent():
    sessions, _ = make_manager()
    token = sessions.create(5)
    sessions.destroy(token)
    assert sessions.resolve(token) is None
    sessions.destroy(token)
    sessions.destroy(None)


def test_idle_expiry():
    sessions, clock = make_manager(idle_timeout=60)
    token = sessions.create(9)
    clock.now += 61
    assert sessions.resolve(token) is None
    # The expired entry is pruned, so winding the clock back does not revive it.
    clock.now -= 61
    assert sessions.resolve(token) is None


def test_access_extends_idle_window():
    sessions, clock = make_manager(idle_timeout=60)
    token = sessions.create(9)
    for _ in range(5):
        clock.now += 45
        assert sessions.resolve(token) == 9
    clock.now += 61
    assert sessions.resolve(token) is None
