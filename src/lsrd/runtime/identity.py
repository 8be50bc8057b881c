from __future__ import annotations

import socket
from typing import Optional


def local_identity(configured: Optional[str] = None) -> str:
    """Router id: the configured name, else the short host name."""
    if configured:
        return str(configured)
    hostname = socket.gethostname().split(".")[0]
    return hostname or "unknown"
