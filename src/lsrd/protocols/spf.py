"""Shortest-path-first computation over the link-state database.

Edges are weighted by capacity (``reference_bandwidth // capacity``, at least
1), so faster links are cheaper. The search is the table-driven O(V^2)
Dijkstra: the topology is expected to stay in the tens of routers.

Ties between unvisited vertices of equal cost are broken by lowest router id.
Relaxation uses a strict ``<``, so on equal-cost paths the predecessor that was
settled first is kept and decides the recorded next hop.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from lsrd.model.routing import RouteTableEntry
from lsrd.model.state import NeighborLink, RouterId, TopologyDatabase

DEFAULT_REFERENCE_BANDWIDTH = 1000
INFINITY = float("inf")


def link_weight(link: NeighborLink, reference_bandwidth: int = DEFAULT_REFERENCE_BANDWIDTH) -> Optional[int]:
    if not link.link_up or link.capacity <= 0:
        return None
    return max(1, int(reference_bandwidth) // int(link.capacity))


def compute_routes(
    db: TopologyDatabase,
    source: RouterId,
    reference_bandwidth: int = DEFAULT_REFERENCE_BANDWIDTH,
) -> List[RouteTableEntry]:
    vertices = sorted(db.all_router_ids() | {source})
    cost: Dict[RouterId, float] = {v: INFINITY for v in vertices}
    prev: Dict[RouterId, Optional[RouterId]] = {v: None for v in vertices}
    visited: Dict[RouterId, bool] = {v: False for v in vertices}
    cost[source] = 0

    while True:
        u = None
        for v in vertices:
            if not visited[v] and cost[v] < INFINITY and (u is None or cost[v] < cost[u]):
                u = v
        if u is None:
            break
        visited[u] = True

        entry = db.get(u)
        if entry is None:
            continue
        for link in entry.links:
            v = link.neighbor_id
            if v not in cost or visited[v]:
                continue
            weight = link_weight(link, reference_bandwidth)
            if weight is None:
                continue
            candidate = cost[u] + weight
            if candidate < cost[v]:
                cost[v] = candidate
                prev[v] = u

    routes: List[RouteTableEntry] = []
    for destination in vertices:
        if destination == source or cost[destination] == INFINITY:
            continue
        routes.append(
            RouteTableEntry(
                destination=destination,
                next_hop=_first_hop(prev, source, destination),
                cost=int(cost[destination]),
            )
        )
    return routes


def _first_hop(prev: Dict[RouterId, Optional[RouterId]], source: RouterId, destination: RouterId) -> Optional[RouterId]:
    hop = destination
    while prev[hop] is not None and prev[hop] != source:
        hop = prev[hop]
    return hop if prev[hop] == source else None
