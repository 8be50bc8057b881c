from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Hashable, Iterable, List, Optional, Set, Tuple

RouterId = str
Address = Tuple[str, int]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborLink:
    neighbor_id: RouterId
    link_up: bool
    capacity: int


@dataclass(frozen=True)
class TopologyEntry:
    router_id: RouterId
    links: Tuple[NeighborLink, ...]


def normalize_links(links: Iterable[NeighborLink]) -> Tuple[NeighborLink, ...]:
    """Keep one link per neighbor; a repeated neighbor replaces the earlier link in place."""
    ordered: Dict[RouterId, NeighborLink] = {}
    for link in links:
        ordered[link.neighbor_id] = link
    return tuple(ordered.values())


class TopologyDatabase:
    """Link-state database: router id -> the full link set from its latest LSA."""

    def __init__(self, max_routers: int = 32) -> None:
        self._max_routers = int(max_routers)
        self._entries: Dict[RouterId, TopologyEntry] = {}

    def apply_lsa(self, router_id: RouterId, links: Iterable[NeighborLink]) -> bool:
        entry = TopologyEntry(router_id=str(router_id), links=normalize_links(links))
        current = self._entries.get(entry.router_id)
        if current is None and len(self._entries) >= self._max_routers:
            _log.warning(
                "topology database full (%s routers), dropping LSA from %s",
                self._max_routers,
                entry.router_id,
            )
            return False
        if current == entry:
            return False
        self._entries[entry.router_id] = entry
        return True

    def get(self, router_id: RouterId) -> Optional[TopologyEntry]:
        return self._entries.get(router_id)

    def all_router_ids(self) -> Set[RouterId]:
        return set(self._entries)

    def entries(self) -> List[TopologyEntry]:
        return [self._entries[rid] for rid in sorted(self._entries)]

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class NeighborRecord:
    address: Address
    router_id: Optional[RouterId]
    link_up: bool
    capacity: int
    last_seen: float

    def to_dict(self) -> dict:
        return {
            "address": f"{self.address[0]}:{self.address[1]}",
            "router_id": self.router_id,
            "link_up": bool(self.link_up),
            "capacity": int(self.capacity),
            "last_seen": float(self.last_seen),
        }


class NeighborTable:
    """Directly observed adjacencies, keyed by peer transport address."""

    def __init__(self, max_neighbors: int = 8) -> None:
        self._max_neighbors = int(max_neighbors)
        self._records: Dict[Address, NeighborRecord] = {}

    def upsert(
        self,
        address: Address,
        router_id: Optional[RouterId],
        capacity: int,
        status: int,
        now: float,
    ) -> bool:
        address = (str(address[0]), int(address[1]))
        link_up = int(status) != 0
        record = self._records.get(address)
        if record is None:
            if len(self._records) >= self._max_neighbors:
                _log.warning(
                    "neighbor table full (%s peers), dropping hello from %s:%s",
                    self._max_neighbors,
                    address[0],
                    address[1],
                )
                return False
            self._records[address] = NeighborRecord(
                address=address,
                router_id=router_id,
                link_up=link_up,
                capacity=int(capacity),
                last_seen=float(now),
            )
            return True

        before = (record.router_id, record.link_up, record.capacity)
        if router_id is not None:
            record.router_id = router_id
        record.link_up = link_up
        record.capacity = int(capacity)
        record.last_seen = float(now)
        return before != (record.router_id, record.link_up, record.capacity)

    def get(self, address: Address) -> Optional[NeighborRecord]:
        return self._records.get((str(address[0]), int(address[1])))

    def snapshot(self) -> List[NeighborRecord]:
        return [replace(record) for record in self._records.values()]

    def links(self) -> List[NeighborLink]:
        by_router: Dict[RouterId, NeighborLink] = {}
        for record in self._records.values():
            if record.router_id is None:
                continue
            by_router[record.router_id] = NeighborLink(
                neighbor_id=record.router_id,
                link_up=record.link_up,
                capacity=record.capacity,
            )
        return list(by_router.values())

    def refresh_liveness(self, now: float, dead_interval: float) -> List[Address]:
        changed: List[Address] = []
        for address, record in self._records.items():
            if record.link_up and (now - record.last_seen) > dead_interval:
                record.link_up = False
                changed.append(address)
        return changed

    def __len__(self) -> int:
        return len(self._records)


class DedupCache:
    """Bounded set of processed ids.

    Once ``capacity`` ids are stored, further ids are not remembered and no
    older id is evicted, so suppression only covers the first ``capacity``
    distinct ids of the run.
    """

    def __init__(self, capacity: int = 100) -> None:
        self._capacity = int(capacity)
        self._ids: Set[Hashable] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    def seen(self, item_id: Hashable) -> bool:
        return item_id in self._ids

    def remember(self, item_id: Hashable) -> bool:
        if item_id in self._ids:
            return True
        if len(self._ids) >= self._capacity:
            return False
        self._ids.add(item_id)
        return True

    def __len__(self) -> int:
        return len(self._ids)
