"""Context object shared across worker threads."""

from dataclasses import dataclass
from typing import Optional

from filebox.bootstrap.config import ServerConfig
from filebox.handlers.services import FileboxServices
from filebox.lifecycle.state import ServerLifecycle
from filebox.transport.connection_limiter import ConnectionLimiter


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    services: FileboxServices
    connection_limiter: Optional[ConnectionLimiter] = None
    lifecycle: Optional[ServerLifecycle] = None
    config: Optional[ServerConfig] = None
