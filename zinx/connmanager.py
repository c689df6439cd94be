"""Registry of the live connections of a server."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict

logger = logging.getLogger(__name__)


class ConnectionNotFoundError(LookupError):
    """No connection is registered under the requested id."""


class ConnManager:
    """Thread-safe mapping from connection id to connection."""

    def __init__(self) -> None:
        self._connections: Dict[int, Any] = {}
        self._lock = threading.RLock()

    def add(self, conn: Any) -> None:
        """Register a connection under its ``conn_id``."""
        with self._lock:
            self._connections[conn.conn_id] = conn
            count = len(self._connections)
        logger.info("conn add success: %d, conn len: %d", conn.conn_id, count)

    def remove(self, conn: Any) -> None:
        """Forget a connection; forgetting an unknown one does nothing."""
        with self._lock:
            self._connections.pop(conn.conn_id, None)
        logger.info("remove conn success: %d", conn.conn_id)

    def get(self, conn_id: int) -> Any:
        """Return the connection registered under ``conn_id``."""
        with self._lock:
            try:
                return self._connections[conn_id]
            except KeyError:
                raise ConnectionNotFoundError("connection not found") from None

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def clear(self) -> None:
        """Stop every connection and forget all of them."""
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            conn.stop()
        logger.info("all connections cleared")