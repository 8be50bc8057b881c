from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from lsrd.errors import MessageDecodeError
from lsrd.model.state import NeighborLink

PROTOCOL = "lsrd"


class MessageKind(str, Enum):
    HELLO = "hello"
    LSA = "lsa"
    NEIGHBOR_REQUEST = "neighbor_request"
    NEIGHBOR_RESPONSE = "neighbor_response"
    CONTROL = "control"
    CONTROL_REPLY = "control_reply"


_REQUIRED_FIELDS: Dict[MessageKind, tuple[str, ...]] = {
    MessageKind.HELLO: ("router_id", "capacity", "status"),
    MessageKind.LSA: ("router_id", "seq", "links"),
    MessageKind.NEIGHBOR_REQUEST: ("request_id",),
    MessageKind.NEIGHBOR_RESPONSE: ("request_id", "hostname"),
    MessageKind.CONTROL: ("command",),
    MessageKind.CONTROL_REPLY: ("command", "ok"),
}


@dataclass(frozen=True)
class ControlMessage:
    kind: MessageKind
    src_router_id: str
    seq: int
    payload: Dict[str, Any]
    ts: float
    protocol: str = PROTOCOL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": self.protocol,
            "kind": self.kind.value,
            "src_router_id": str(self.src_router_id),
            "seq": int(self.seq),
            "payload": self.payload,
            "ts": float(self.ts),
        }


def encode_message(message: ControlMessage) -> bytes:
    return json.dumps(message.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_message(data: bytes) -> ControlMessage:
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise MessageDecodeError(f"not a JSON datagram: {exc}") from exc
    if not isinstance(raw, dict):
        raise MessageDecodeError("datagram is not a JSON object")
    if raw.get("protocol") != PROTOCOL:
        raise MessageDecodeError(f"unexpected protocol {raw.get('protocol')!r}")
    try:
        kind = MessageKind(str(raw["kind"]))
        src_router_id = str(raw["src_router_id"])
        seq = int(raw.get("seq", 0))
        ts = float(raw.get("ts", 0.0))
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MessageDecodeError(f"malformed envelope: {exc}") from exc

    payload = raw.get("payload", {})
    if not isinstance(payload, dict):
        raise MessageDecodeError("payload is not an object")
    missing = [name for name in _REQUIRED_FIELDS[kind] if name not in payload]
    if missing:
        raise MessageDecodeError(f"{kind.value} missing fields: {missing}")
    return ControlMessage(kind=kind, src_router_id=src_router_id, seq=seq, payload=payload, ts=ts)


def hello_payload(router_id: str, capacity: int, status: int) -> Dict[str, Any]:
    return {"router_id": str(router_id), "capacity": int(capacity), "status": int(status)}


def lsa_payload(router_id: str, seq: int, ttl: int, links: List[NeighborLink]) -> Dict[str, Any]:
    return {
        "router_id": str(router_id),
        "seq": int(seq),
        "ttl": int(ttl),
        "links": [
            {
                "neighbor_id": link.neighbor_id,
                "link_up": bool(link.link_up),
                "capacity": int(link.capacity),
            }
            for link in links
        ],
    }


def parse_links(raw_links: Any) -> List[NeighborLink]:
    if not isinstance(raw_links, list):
        raise MessageDecodeError("lsa links is not a list")
    links: List[NeighborLink] = []
    try:
        for item in raw_links:
            link_up = item["link_up"]
            if not isinstance(link_up, bool):
                raise TypeError(f"link_up must be true or false, got {link_up!r}")
            links.append(
                NeighborLink(
                    neighbor_id=str(item["neighbor_id"]),
                    link_up=link_up,
                    capacity=int(item["capacity"]),
                )
            )
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MessageDecodeError(f"malformed lsa link: {exc}") from exc
    return links


def parse_hello(payload: Dict[str, Any]) -> tuple[str, int, int]:
    try:
        return str(payload["router_id"]), int(payload["capacity"]), int(payload["status"])
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MessageDecodeError(f"malformed hello: {exc}") from exc
