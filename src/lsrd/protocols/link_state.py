from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from lsrd.errors import MessageDecodeError
from lsrd.model.messages import (
    ControlMessage,
    MessageKind,
    hello_payload,
    lsa_payload,
    parse_hello,
    parse_links,
)
from lsrd.model.state import Address, DedupCache, NeighborTable, TopologyDatabase
from lsrd.protocols.base import (
    BROADCAST,
    MULTICAST,
    Destination,
    ProtocolContext,
    ProtocolEngine,
    ProtocolOutputs,
)
from lsrd.protocols.discovery import LinkAdvert, answer_neighbor_request
from lsrd.protocols.spf import DEFAULT_REFERENCE_BANDWIDTH, compute_routes

_log = logging.getLogger(__name__)


@dataclass
class LinkStateSettings:
    hello_interval: float = 5.0
    lsa_interval: float = 10.0
    dead_interval: float = 0.0
    hello_delivery: str = "broadcast"
    lsa_delivery: str = "multicast"
    lsa_on_hello: bool = True
    lsa_ttl: int = 8
    reference_bandwidth: int = DEFAULT_REFERENCE_BANDWIDTH


class LinkStateProtocol(ProtocolEngine):
    """Hello-driven adjacency, flooded LSAs and SPF over the link-state database."""

    def __init__(
        self,
        settings: LinkStateSettings | None = None,
        advert: LinkAdvert | None = None,
        neighbors: NeighborTable | None = None,
        topology: TopologyDatabase | None = None,
        lsa_cache: DedupCache | None = None,
        request_cache: DedupCache | None = None,
        initial_lsa_seq: int = 0,
    ) -> None:
        super().__init__()
        self._settings = settings or LinkStateSettings()
        self._advert = advert or LinkAdvert()
        self.neighbors = neighbors if neighbors is not None else NeighborTable()
        self.topology = topology if topology is not None else TopologyDatabase()
        self._lsa_cache = lsa_cache if lsa_cache is not None else DedupCache()
        self._request_cache = request_cache if request_cache is not None else DedupCache()
        self._lsa_seq = int(initial_lsa_seq)
        self._origin_seq: Dict[str, int] = {}
        self._last_hello_at = -1e9
        self._last_lsa_at = -1e9
        self._own_lsa: Optional[dict] = None
        self.enabled = True

    @property
    def name(self) -> str:
        return "link_state"

    def start(self, ctx: ProtocolContext) -> ProtocolOutputs:
        outputs = ProtocolOutputs()
        outputs.outbound.append(self._send_hello(ctx))
        self._originate_lsa(ctx, outputs)
        outputs.routes = self.compute(ctx.router_id)
        return outputs

    def on_timer(self, ctx: ProtocolContext) -> ProtocolOutputs:
        outputs = ProtocolOutputs()
        if not self.enabled:
            return outputs
        now = ctx.now

        adjacency_changed = False
        if self._settings.dead_interval > 0:
            expired = self.neighbors.refresh_liveness(now, self._settings.dead_interval)
            for host, port in expired:
                _log.warning("neighbor %s:%s is down (no hello for %.1fs)", host, port, self._settings.dead_interval)
            adjacency_changed = bool(expired)

        if (now - self._last_hello_at) >= self._settings.hello_interval:
            outputs.outbound.append(self._send_hello(ctx))

        if adjacency_changed or (now - self._last_lsa_at) >= self._settings.lsa_interval:
            if self._originate_lsa(ctx, outputs):
                outputs.routes = self.compute(ctx.router_id)
        return outputs

    def on_message(self, ctx: ProtocolContext, message: ControlMessage, source: Address) -> ProtocolOutputs:
        if message.kind == MessageKind.NEIGHBOR_REQUEST:
            return answer_neighbor_request(
                self, ctx, message.payload, source, self._request_cache, self._advert
            )
        if not self.enabled:
            return ProtocolOutputs()
        if message.kind == MessageKind.HELLO:
            return self._on_hello(ctx, message, source)
        if message.kind == MessageKind.LSA:
            return self._on_lsa(ctx, message, source)
        return ProtocolOutputs()

    def compute(self, router_id: str):
        return compute_routes(self.topology, router_id, self._settings.reference_bandwidth)

    def _on_hello(self, ctx: ProtocolContext, message: ControlMessage, source: Address) -> ProtocolOutputs:
        outputs = ProtocolOutputs()
        router_id, capacity, status = parse_hello(message.payload)
        if router_id == ctx.router_id:
            return outputs

        is_new = self.neighbors.get(source) is None
        changed = self.neighbors.upsert(source, router_id, capacity, status, ctx.now)
        record = self.neighbors.get(source)
        if record is None:
            return outputs

        if is_new:
            _log.info("new neighbor %s at %s:%s (capacity %s Mbps)", router_id, source[0], source[1], capacity)
            outputs.discovered.append(replace(record))
            outputs.outbound.append((Destination.unicast(source), self._hello_message(ctx)))

        if changed and self._originate_lsa(ctx, outputs):
            outputs.routes = self.compute(ctx.router_id)
        elif self._settings.lsa_on_hello and self._own_lsa is not None:
            outputs.outbound.append(
                (Destination.unicast(source), self.new_message(ctx, MessageKind.LSA, dict(self._own_lsa)))
            )
        return outputs

    def _on_lsa(self, ctx: ProtocolContext, message: ControlMessage, source: Address) -> ProtocolOutputs:
        outputs = ProtocolOutputs()
        payload = message.payload
        links = parse_links(payload["links"])
        try:
            origin = str(payload["router_id"])
            seq = int(payload["seq"])
            ttl = int(payload.get("ttl", 1))
        except (TypeError, ValueError, OverflowError) as exc:
            raise MessageDecodeError(f"malformed lsa: {exc}") from exc

        if origin == ctx.router_id:
            return outputs
        key = (origin, seq)
        if self._lsa_cache.seen(key):
            _log.debug("drop duplicate lsa origin=%s seq=%s", origin, seq)
            return outputs
        if not self._lsa_cache.remember(key):
            _log.debug("lsa cache full, origin=%s seq=%s will not be suppressed", origin, seq)
        # An accepted seq is never applied or flooded twice, even once the dedup cache is full.
        last_seq = self._origin_seq.get(origin)
        if last_seq is not None and seq <= last_seq:
            _log.debug("drop stale lsa origin=%s seq=%s (last accepted %s)", origin, seq, last_seq)
            return outputs
        self._origin_seq[origin] = seq

        changed = self.topology.apply_lsa(origin, links)
        if ttl > 1:
            forwarded = dict(payload, ttl=ttl - 1)
            for destination in self._lsa_destinations(exclude=source):
                outputs.outbound.append(
                    (destination, self.new_message(ctx, MessageKind.LSA, dict(forwarded)))
                )
        if changed:
            _log.info("topology updated from lsa origin=%s seq=%s links=%s", origin, seq, len(links))
            outputs.routes = self.compute(ctx.router_id)
        return outputs

    def _hello_message(self, ctx: ProtocolContext) -> ControlMessage:
        payload = hello_payload(ctx.router_id, self._advert.capacity, self._advert.status)
        return self.new_message(ctx, MessageKind.HELLO, payload)

    def _send_hello(self, ctx: ProtocolContext):
        self._last_hello_at = ctx.now
        destination = MULTICAST if self._settings.hello_delivery == "multicast" else BROADCAST
        return destination, self._hello_message(ctx)

    def _originate_lsa(self, ctx: ProtocolContext, outputs: ProtocolOutputs) -> bool:
        self._lsa_seq += 1
        self._last_lsa_at = ctx.now
        links = self.neighbors.links()
        self._own_lsa = lsa_payload(ctx.router_id, self._lsa_seq, self._settings.lsa_ttl, links)
        changed = self.topology.apply_lsa(ctx.router_id, links)
        for destination in self._lsa_destinations(exclude=None):
            outputs.outbound.append(
                (destination, self.new_message(ctx, MessageKind.LSA, dict(self._own_lsa)))
            )
        return changed

    def _lsa_destinations(self, exclude: Optional[Address]) -> List[Destination]:
        if self._settings.lsa_delivery == "multicast":
            return [MULTICAST]
        return [
            Destination.unicast(record.address)
            for record in self.neighbors.snapshot()
            if record.link_up and record.address != exclude
        ]
