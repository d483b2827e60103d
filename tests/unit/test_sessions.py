"""Unit tests for the in-memory session store."""

from filebox.auth.sessions import SessionStore

SECOND_NS = 1_000_000_000


class FakeClock:
    """Monotonic nanosecond clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds * SECOND_NS


def test_create_and_lookup() -> None:
    store = SessionStore(60, FakeClock())
    token = store.create("alice")
    assert len(token) >= 32
    assert store.lookup(token) == "alice"


def test_tokens_are_unique_per_login() -> None:
    store = SessionStore(60, FakeClock())
    tokens = {store.create("alice") for _ in range(20)}
    assert len(tokens) == 20
    assert store.active_count() == 20


def test_unknown_and_empty_tokens_map_to_nobody() -> None:
    store = SessionStore(60, FakeClock())
    store.create("alice")
    assert store.lookup(None) is None
    assert store.lookup("") is None
    assert store.lookup("forged-token") is None


def test_sessions_expire_after_ttl() -> None:
    clock = FakeClock()
    store = SessionStore(60, clock)
    token = store.create("alice")

    clock.advance(59)
    assert store.lookup(token) == "alice"

    clock.advance(1)
    assert store.lookup(token) is None
    assert store.active_count() == 0


def test_revoke_forgets_token_and_ignores_unknown() -> None:
    store = SessionStore(60, FakeClock())
    alice = store.create("alice")
    bob = store.create("bob")

    store.revoke(alice)
    store.revoke("never-issued")
    store.revoke(None)

    assert store.lookup(alice) is None
    assert store.lookup(bob) == "bob"
    assert store.active_count() == 1


def test_expired_sessions_are_purged_on_create() -> None:
    clock = FakeClock()
    store = SessionStore(10, clock)
    store.create("alice")
    clock.advance(11)
    store.create("bob")
    assert store.active_count() == 1
