"""Concurrent connection quotas, globally and per client address."""

import threading
from typing import NamedTuple, Optional


class SlotDecision(NamedTuple):
    """Outcome of a connection slot request."""

    allowed: bool
    limit_type: Optional[str] = None


class ConnectionLimiter:
    """Enforces global and per-IP concurrent connection quotas.

    A limit of zero disables that quota.
    """

    def __init__(self, max_connections: int, max_connections_per_ip: int) -> None:
        self._max_connections = max(0, max_connections)
        self._max_connections_per_ip = max(0, max_connections_per_ip)
        self._lock = threading.Lock()
        self._per_ip: dict[str, int] = {}

    def _global_active(self) -> int:
        return sum(self._per_ip.values())

    def acquire(self, client_ip: str) -> SlotDecision:
        """Reserve a connection slot for ``client_ip`` when both quotas allow it."""
        with self._lock:
            per_ip_active = self._per_ip.get(client_ip, 0)
            if (
                self._max_connections_per_ip
                and per_ip_active >= self._max_connections_per_ip
            ):
                return SlotDecision(False, "ip")
            if (
                self._max_connections
                and self._global_active() >= self._max_connections
            ):
                return SlotDecision(False, "global")
            self._per_ip[client_ip] = per_ip_active + 1
            return SlotDecision(True)

    def release(self, client_ip: str) -> None:
        """Return a slot taken by :meth:`acquire`; unknown addresses are ignored."""
        with self._lock:
            remaining = self._per_ip.get(client_ip, 0) - 1
            if remaining > 0:
                self._per_ip[client_ip] = remaining
            else:
                self._per_ip.pop(client_ip, None)

    def active_connections(self, client_ip: Optional[str] = None) -> int:
        """Return live slots for one address, or across all addresses."""
        with self._lock:
            if client_ip is None:
                return self._global_active()
            return self._per_ip.get(client_ip, 0)
