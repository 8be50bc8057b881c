"""Neighbor discovery without a link-state database.

``NeighborAgent`` is the passive side: it never sends on its own and answers
each distinct neighbor request once. ``DiscoveryProbe`` is the active side: one
broadcast, then replies are collected until a hard deadline.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import List, Optional

from lsrd.errors import MessageDecodeError
from lsrd.model.messages import MessageKind, hello_payload, parse_hello
from lsrd.model.state import Address, DedupCache, NeighborRecord, NeighborTable
from lsrd.protocols.base import BROADCAST, Destination, ProtocolContext, ProtocolEngine, ProtocolOutputs

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkAdvert:
    """What this router says about its own link in hellos and responses."""

    capacity: int = 100
    status: int = 1


def answer_neighbor_request(
    engine: ProtocolEngine,
    ctx: ProtocolContext,
    payload: dict,
    source: Address,
    cache: DedupCache,
    advert: LinkAdvert,
) -> ProtocolOutputs:
    outputs = ProtocolOutputs()
    try:
        request_id = int(payload["request_id"])
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MessageDecodeError(f"malformed neighbor request: {exc}") from exc
    if cache.seen(request_id):
        _log.debug("ignore repeated neighbor request id=%s from %s:%s", request_id, *source)
        return outputs
    if not cache.remember(request_id):
        _log.debug("request cache full, id=%s will not be suppressed", request_id)
    reply = {
        "request_id": request_id,
        "hostname": ctx.router_id,
        "capacity": int(advert.capacity),
        "status": int(advert.status),
    }
    outputs.outbound.append(
        (Destination.unicast(source), engine.new_message(ctx, MessageKind.NEIGHBOR_RESPONSE, reply))
    )
    return outputs


class NeighborAgent(ProtocolEngine):
    def __init__(self, advert: LinkAdvert | None = None, request_cache: DedupCache | None = None) -> None:
        super().__init__()
        self._advert = advert or LinkAdvert()
        self._requests = request_cache if request_cache is not None else DedupCache()

    @property
    def name(self) -> str:
        return "agent"

    def start(self, ctx: ProtocolContext) -> ProtocolOutputs:
        return ProtocolOutputs()

    def on_timer(self, ctx: ProtocolContext) -> ProtocolOutputs:
        return ProtocolOutputs()

    def on_message(self, ctx, message, source) -> ProtocolOutputs:
        if message.kind != MessageKind.NEIGHBOR_REQUEST:
            return ProtocolOutputs()
        return answer_neighbor_request(self, ctx, message.payload, source, self._requests, self._advert)


class DiscoveryProbe(ProtocolEngine):
    def __init__(
        self,
        response_window: float = 3.0,
        advert: LinkAdvert | None = None,
        max_neighbors: int = 8,
        request_id: Optional[int] = None,
    ) -> None:
        super().__init__()
        self._window = float(response_window)
        self._advert = advert or LinkAdvert()
        self._table = NeighborTable(max_neighbors=max_neighbors)
        self.request_id = int(request_id) if request_id is not None else random.getrandbits(31)
        self._deadline: Optional[float] = None

    @property
    def name(self) -> str:
        return "probe"

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def done(self, now: float) -> bool:
        return self._deadline is not None and now >= self._deadline

    def start(self, ctx: ProtocolContext) -> ProtocolOutputs:
        self._deadline = ctx.now + self._window
        request = self.new_message(ctx, MessageKind.NEIGHBOR_REQUEST, {"request_id": self.request_id})
        hello = self.new_message(
            ctx, MessageKind.HELLO, hello_payload(ctx.router_id, self._advert.capacity, self._advert.status)
        )
        return ProtocolOutputs(outbound=[(BROADCAST, request), (BROADCAST, hello)])

    def on_timer(self, ctx: ProtocolContext) -> ProtocolOutputs:
        return ProtocolOutputs()

    def on_message(self, ctx, message, source) -> ProtocolOutputs:
        outputs = ProtocolOutputs()
        if self._deadline is None or self.done(ctx.now):
            return outputs

        if message.kind == MessageKind.NEIGHBOR_RESPONSE:
            payload = message.payload
            try:
                if int(payload["request_id"]) != self.request_id:
                    return outputs
                router_id = str(payload["hostname"])
                capacity = int(payload.get("capacity", 0))
                status = int(payload.get("status", 1))
            except (KeyError, TypeError, ValueError, OverflowError) as exc:
                raise MessageDecodeError(f"malformed neighbor response: {exc}") from exc
        elif message.kind == MessageKind.HELLO:
            router_id, capacity, status = parse_hello(message.payload)
        else:
            return outputs

        if router_id == ctx.router_id:
            return outputs
        is_new = self._table.get(source) is None
        self._table.upsert(source, router_id, capacity, status, ctx.now)
        record = self._table.get(source)
        if is_new and record is not None:
            outputs.discovered.append(replace(record))
        return outputs

    def results(self) -> List[NeighborRecord]:
        return self._table.snapshot()
