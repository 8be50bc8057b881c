from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class RouteTableEntry:
    destination: str
    next_hop: Optional[str]
    cost: int

    def to_dict(self) -> dict:
        return {"destination": self.destination, "next_hop": self.next_hop, "cost": int(self.cost)}


class RouteTable:
    """Last published SPF result, kept for reporting and change detection."""

    def __init__(self) -> None:
        self._routes: Dict[str, RouteTableEntry] = {}

    def replace(self, routes: Iterable[RouteTableEntry]) -> bool:
        next_routes = {route.destination: route for route in routes}
        if next_routes == self._routes:
            return False
        self._routes = next_routes
        return True

    def snapshot(self) -> List[RouteTableEntry]:
        return sorted(self._routes.values(), key=lambda r: r.destination)
