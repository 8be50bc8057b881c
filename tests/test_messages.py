from __future__ import annotations

import json

import pytest

from lsrd.errors import MessageDecodeError
from lsrd.model.messages import (
    ControlMessage,
    MessageKind,
    decode_message,
    encode_message,
    lsa_payload,
    parse_hello,
    parse_links,
)
from lsrd.model.state import NeighborLink


def _raw(**overrides) -> bytes:
    envelope = {
        "protocol": "lsrd",
        "kind": "hello",
        "src_router_id": "R1",
        "seq": 1,
        "payload": {"router_id": "R1", "capacity": 100, "status": 1},
        "ts": 0.0,
    }
    envelope.update(overrides)
    return json.dumps(envelope).encode("utf-8")


def test_lsa_survives_the_wire() -> None:
    links = [NeighborLink("R2", True, 100), NeighborLink("R3", False, 10)]
    message = ControlMessage(
        kind=MessageKind.LSA,
        src_router_id="R1",
        seq=4,
        payload=lsa_payload("R1", seq=9, ttl=8, links=links),
        ts=1.5,
    )

    decoded = decode_message(encode_message(message))

    assert decoded == message
    assert parse_links(decoded.payload["links"]) == links


@pytest.mark.parametrize(
    "data",
    [
        b"\xff\xfe",
        b"NEIGHBOR_REQUEST 12",
        b"[1, 2, 3]",
        _raw(protocol="ospf"),
        _raw(kind="bogus"),
        _raw(payload={"router_id": "R1"}),
        _raw(payload="hello"),
        _raw(seq="first"),
        _raw(seq=float("inf")),
        _raw().replace(b'"seq": 1,', b'"seq": 1e400,'),
        b"[" * 60000,
    ],
)
def test_malformed_datagrams_are_rejected(data: bytes) -> None:
    with pytest.raises(MessageDecodeError):
        decode_message(data)


def test_missing_src_router_id_is_rejected() -> None:
    envelope = json.loads(_raw())
    del envelope["src_router_id"]
    with pytest.raises(MessageDecodeError):
        decode_message(json.dumps(envelope).encode("utf-8"))


def test_parse_links_rejects_bad_capacity() -> None:
    with pytest.raises(MessageDecodeError):
        parse_links([{"neighbor_id": "R2", "link_up": True, "capacity": "fast"}])
    with pytest.raises(MessageDecodeError):
        parse_links({"neighbor_id": "R2"})


def test_parse_links_requires_boolean_link_state() -> None:
    with pytest.raises(MessageDecodeError):
        parse_links([{"neighbor_id": "R2", "link_up": "false", "capacity": 100}])
    with pytest.raises(MessageDecodeError):
        parse_links([{"neighbor_id": "R2", "link_up": 1, "capacity": 100}])


def test_infinite_numbers_in_payloads_are_rejected() -> None:
    with pytest.raises(MessageDecodeError):
        parse_links([{"neighbor_id": "R2", "link_up": True, "capacity": float("inf")}])
    with pytest.raises(MessageDecodeError):
        parse_hello({"router_id": "R2", "capacity": float("inf"), "status": 1})
