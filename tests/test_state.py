from __future__ import annotations

from lsrd.model.state import DedupCache, NeighborLink, NeighborTable, TopologyDatabase


def _link(rid: str, capacity: int = 100, up: bool = True) -> NeighborLink:
    return NeighborLink(neighbor_id=rid, link_up=up, capacity=capacity)


def test_apply_lsa_replaces_entry_wholesale() -> None:
    db = TopologyDatabase()
    assert db.apply_lsa("A", [_link("B"), _link("C")]) is True
    assert db.apply_lsa("A", [_link("D", 10)]) is True

    entry = db.get("A")
    assert entry is not None
    assert entry.links == (_link("D", 10),)


def test_apply_lsa_identical_is_not_a_change() -> None:
    db = TopologyDatabase()
    db.apply_lsa("A", [_link("B")])
    before = db.get("A")

    assert db.apply_lsa("A", [_link("B")]) is False
    assert db.get("A") == before


def test_repeated_neighbor_in_one_lsa_replaces_in_place() -> None:
    db = TopologyDatabase()
    db.apply_lsa("A", [_link("B", 10), _link("C"), _link("B", 40, up=False)])

    entry = db.get("A")
    assert entry is not None
    assert [link.neighbor_id for link in entry.links] == ["B", "C"]
    assert entry.links[0] == _link("B", 40, up=False)


def test_unknown_router_is_absent_not_empty() -> None:
    db = TopologyDatabase()
    db.apply_lsa("A", [])

    assert db.get("Z") is None
    assert db.get("A") is not None
    assert db.get("A").links == ()
    assert db.all_router_ids() == {"A"}


def test_topology_full_drops_new_router_and_keeps_existing() -> None:
    db = TopologyDatabase(max_routers=2)
    db.apply_lsa("A", [_link("B")])
    db.apply_lsa("B", [_link("A")])

    assert db.apply_lsa("C", [_link("A")]) is False
    assert db.get("C") is None
    # known routers still update
    assert db.apply_lsa("A", [_link("C")]) is True
    assert db.all_router_ids() == {"A", "B"}


def test_dedup_cache_remember_then_seen() -> None:
    cache = DedupCache(capacity=3)
    assert cache.seen(7) is False
    assert cache.remember(7) is True
    assert cache.seen(7) is True


def test_dedup_cache_full_is_noop_without_eviction() -> None:
    cache = DedupCache(capacity=2)
    cache.remember(1)
    cache.remember(2)

    assert cache.remember(3) is False
    assert cache.seen(3) is False
    assert cache.seen(1) and cache.seen(2)
    assert len(cache) == 2
    assert cache.remember(1) is True


def test_neighbor_table_updates_in_place() -> None:
    table = NeighborTable()
    addr = ("10.0.0.2", 5000)

    assert table.upsert(addr, "R2", 100, 1, now=1.0) is True
    assert table.upsert(addr, "R2", 100, 1, now=2.0) is False
    assert table.upsert(addr, None, 50, 0, now=3.0) is True

    records = table.snapshot()
    assert len(records) == 1
    assert records[0].router_id == "R2"
    assert records[0].capacity == 50
    assert records[0].link_up is False
    assert records[0].last_seen == 3.0


def test_neighbor_table_full_drops_new_peer() -> None:
    table = NeighborTable(max_neighbors=1)
    table.upsert(("10.0.0.2", 5000), "R2", 100, 1, now=0.0)

    assert table.upsert(("10.0.0.3", 5000), "R3", 100, 1, now=0.0) is False
    assert [r.router_id for r in table.snapshot()] == ["R2"]


def test_neighbor_links_skip_unidentified_peers() -> None:
    table = NeighborTable()
    table.upsert(("10.0.0.2", 5000), "R2", 100, 1, now=0.0)
    table.upsert(("10.0.0.3", 5000), None, 10, 1, now=0.0)

    assert table.links() == [_link("R2")]


def test_refresh_liveness_marks_silent_peers_down() -> None:
    table = NeighborTable()
    table.upsert(("10.0.0.2", 5000), "R2", 100, 1, now=0.0)
    table.upsert(("10.0.0.3", 5000), "R3", 100, 1, now=8.0)

    assert table.refresh_liveness(now=10.0, dead_interval=5.0) == [("10.0.0.2", 5000)]
    assert table.get(("10.0.0.2", 5000)).link_up is False
    assert table.get(("10.0.0.3", 5000)).link_up is True
    assert table.refresh_liveness(now=10.0, dead_interval=5.0) == []
