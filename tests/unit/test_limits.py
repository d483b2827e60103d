"""Unit tests for connection limiting."""

from filebox.transport.connection_limiter import ConnectionLimiter, SlotDecision


def test_connection_limiter_enforces_global_and_per_ip() -> None:
    """Ensure both global and per-IP quotas are respected."""

    limiter = ConnectionLimiter(max_connections=1, max_connections_per_ip=1)

    assert limiter.acquire("127.0.0.1") == SlotDecision(True)

    allowed, limit_type = limiter.acquire("127.0.0.1")
    assert allowed is False
    assert limit_type == "ip"

    limiter.release("127.0.0.1")
    assert limiter.acquire("192.168.0.2").allowed is True

    blocked = limiter.acquire("10.0.0.5")
    assert blocked.allowed is False
    assert blocked.limit_type == "global"


def test_zero_limits_are_unlimited() -> None:
    """A quota of zero disables that check."""

    limiter = ConnectionLimiter(max_connections=0, max_connections_per_ip=0)
    for _ in range(50):
        assert limiter.acquire("127.0.0.1").allowed is True
    assert limiter.active_connections() == 50
    assert limiter.active_connections("127.0.0.1") == 50


def test_release_tracks_counts_per_address() -> None:
    """Releases decrement only the given address and ignore unknown ones."""

    limiter = ConnectionLimiter(max_connections=10, max_connections_per_ip=2)
    limiter.acquire("10.0.0.1")
    limiter.acquire("10.0.0.1")
    limiter.acquire("10.0.0.2")

    limiter.release("10.0.0.1")
    limiter.release("203.0.113.9")

    assert limiter.active_connections("10.0.0.1") == 1
    assert limiter.active_connections("10.0.0.2") == 1
    assert limiter.active_connections() == 2
