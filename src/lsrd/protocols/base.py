from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from lsrd.model.messages import ControlMessage, MessageKind
from lsrd.model.routing import RouteTableEntry
from lsrd.model.state import Address, NeighborRecord


@dataclass(frozen=True)
class Destination:
    """Where an outbound message goes; the runtime maps scopes to socket addresses."""

    scope: str
    address: Optional[Address] = None

    @classmethod
    def unicast(cls, address: Address) -> "Destination":
        return cls(scope="unicast", address=(str(address[0]), int(address[1])))


BROADCAST = Destination(scope="broadcast")
MULTICAST = Destination(scope="multicast")


@dataclass(frozen=True)
class ProtocolContext:
    router_id: str
    now: float


@dataclass
class ProtocolOutputs:
    outbound: List[Tuple[Destination, ControlMessage]] = field(default_factory=list)
    routes: Optional[List[RouteTableEntry]] = None
    discovered: List[NeighborRecord] = field(default_factory=list)


class ProtocolEngine(ABC):
    """I/O-free protocol logic driven by the runtime's timer and receive loop."""

    def __init__(self) -> None:
        self._msg_seq = 0

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def start(self, ctx: ProtocolContext) -> ProtocolOutputs:
        raise NotImplementedError

    @abstractmethod
    def on_timer(self, ctx: ProtocolContext) -> ProtocolOutputs:
        raise NotImplementedError

    @abstractmethod
    def on_message(self, ctx: ProtocolContext, message: ControlMessage, source: Address) -> ProtocolOutputs:
        raise NotImplementedError

    def new_message(self, ctx: ProtocolContext, kind: MessageKind, payload: Dict[str, Any]) -> ControlMessage:
        self._msg_seq += 1
        return ControlMessage(
            kind=kind,
            src_router_id=ctx.router_id,
            seq=self._msg_seq,
            payload=payload,
            ts=ctx.now,
        )
