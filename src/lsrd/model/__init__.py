"""Shared control-plane models."""

from lsrd.model.messages import ControlMessage, MessageKind, decode_message, encode_message
from lsrd.model.routing import RouteTable, RouteTableEntry
from lsrd.model.state import (
    DedupCache,
    NeighborLink,
    NeighborRecord,
    NeighborTable,
    TopologyDatabase,
    TopologyEntry,
)

__all__ = [
    "ControlMessage",
    "DedupCache",
    "MessageKind",
    "NeighborLink",
    "NeighborRecord",
    "NeighborTable",
    "RouteTable",
    "RouteTableEntry",
    "TopologyDatabase",
    "TopologyEntry",
    "decode_message",
    "encode_message",
]
