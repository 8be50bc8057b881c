"""Routing protocol engines."""

from lsrd.protocols.base import Destination, ProtocolContext, ProtocolEngine, ProtocolOutputs
from lsrd.protocols.discovery import DiscoveryProbe, LinkAdvert, NeighborAgent
from lsrd.protocols.link_state import LinkStateProtocol, LinkStateSettings
from lsrd.protocols.spf import compute_routes, link_weight

__all__ = [
    "Destination",
    "DiscoveryProbe",
    "LinkAdvert",
    "LinkStateProtocol",
    "LinkStateSettings",
    "NeighborAgent",
    "ProtocolContext",
    "ProtocolEngine",
    "ProtocolOutputs",
    "compute_routes",
    "link_weight",
]
