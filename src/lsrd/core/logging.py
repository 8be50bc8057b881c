from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Callable, Optional


class EventLog:
    """Router events as JSON lines, stamped with the router id and wall time.

    Without a path every call is a no-op. The file is appended to, so one log
    survives daemon restarts.
    """

    def __init__(
        self,
        path: str | Path | None,
        router_id: str,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._router_id = router_id
        self._wall_clock = wall_clock
        self._fh: Optional[Any] = None
        if path:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            self._fh = target.open("a", encoding="utf-8")

    @property
    def enabled(self) -> bool:
        return self._fh is not None

    def emit(self, event: str, **fields: Any) -> None:
        if self._fh is None:
            return
        row = {"event": event, "router_id": self._router_id, "ts": round(self._wall_clock(), 3), **fields}
        self._fh.write(json.dumps(row, sort_keys=True) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
