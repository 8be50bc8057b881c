from __future__ import annotations

import logging
import signal
import time
from typing import Callable, List, Optional, Tuple

from lsrd.core.logging import EventLog
from lsrd.errors import ConfigError, MessageDecodeError, TransportError
from lsrd.model.messages import ControlMessage, MessageKind, decode_message, encode_message
from lsrd.model.routing import RouteTable, RouteTableEntry
from lsrd.model.state import Address, DedupCache, NeighborRecord, NeighborTable, TopologyDatabase
from lsrd.protocols.base import Destination, ProtocolContext, ProtocolEngine, ProtocolOutputs
from lsrd.protocols.discovery import DiscoveryProbe, NeighborAgent
from lsrd.protocols.link_state import LinkStateProtocol
from lsrd.runtime.config import DaemonConfig
from lsrd.runtime.identity import local_identity
from lsrd.runtime.transport import UdpTransport

RouteListener = Callable[[List[RouteTableEntry]], None]
NeighborListener = Callable[[NeighborRecord], None]

CONTROL_COMMANDS = ("status", "enable", "disable", "routes", "neighbors")


class RouterDaemon:
    """Single-threaded control loop around one protocol engine and one UDP socket.

    The daemon is the only writer of the engine's neighbor table, topology
    database and dedup caches. Every receive is bounded by the next timer
    deadline, so hellos and LSA refreshes keep firing on a quiet network.
    """

    def __init__(
        self,
        config: DaemonConfig,
        transport=None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cfg = config
        self._log = logger or logging.getLogger("lsrd.daemon")
        self._clock = clock
        self.router_id = local_identity(config.router_id)
        self._protocol = self._build_protocol(config)
        try:
            self._events = EventLog(config.event_log, self.router_id)
        except OSError as exc:
            raise ConfigError(f"cannot open event_log {config.event_log}: {exc}") from exc
        if transport is None:
            uses_multicast = config.mode == "router" and "multicast" in (
                config.link_state.hello_delivery,
                config.link_state.lsa_delivery,
            )
            try:
                transport = UdpTransport(
                    bind_address=config.bind_address,
                    bind_port=0 if config.mode == "probe" else config.bind_port,
                    multicast_group=config.multicast_group if uses_multicast else None,
                    multicast_ttl=config.multicast_ttl,
                )
            except TransportError:
                self._events.close()
                raise
        self._transport = transport
        self._route_table = RouteTable()
        self._route_listeners: List[RouteListener] = []
        self._neighbor_listeners: List[NeighborListener] = []
        self._running = True

    @property
    def protocol(self) -> ProtocolEngine:
        return self._protocol

    def add_route_listener(self, listener: RouteListener) -> None:
        self._route_listeners.append(listener)

    def add_neighbor_listener(self, listener: NeighborListener) -> None:
        self._neighbor_listeners.append(listener)

    def routes(self) -> List[RouteTableEntry]:
        return self._route_table.snapshot()

    def run_forever(self) -> None:
        if self._cfg.mode == "probe":
            raise RuntimeError("probe mode runs a single discovery cycle; use probe_once()")
        self._install_signal_handlers()
        self._log.info(
            "lsrd start: router_id=%s mode=%s bind=%s:%s",
            self.router_id,
            self._cfg.mode,
            self._cfg.bind_address,
            self._cfg.bind_port,
        )
        next_tick = self.start()
        try:
            while self._running:
                next_tick = self.run_once(next_tick)
        finally:
            self.close()
            self._log.info("lsrd stopped")

    def start(self) -> float:
        """Send the engine's opening messages; returns the first timer deadline."""
        self._apply_outputs(self._protocol.start(self._context(self._clock())))
        return self._clock() + self._cfg.tick_interval

    def run_once(self, next_tick: float) -> float:
        """One loop iteration: a bounded receive, then the timer if it is due."""
        incoming = self._transport.recv(timeout_s=max(0.0, next_tick - self._clock()))
        if incoming is not None:
            self._handle_packet(incoming[0], incoming[1])

        now = self._clock()
        if now >= next_tick:
            self._apply_outputs(self._protocol.on_timer(self._context(now)))
            next_tick = now + self._cfg.tick_interval
        return next_tick

    def probe_once(self) -> List[NeighborRecord]:
        if not isinstance(self._protocol, DiscoveryProbe):
            raise RuntimeError(f"probe_once() needs mode=probe, daemon is in mode={self._cfg.mode}")
        probe = self._protocol
        self._apply_outputs(probe.start(self._context(self._clock())))
        deadline = probe.deadline or self._clock()
        try:
            while True:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                incoming = self._transport.recv(timeout_s=remaining)
                if incoming is not None:
                    self._handle_packet(incoming[0], incoming[1])
        finally:
            self.close()
        results = probe.results()
        self._log.info("discovery finished: %s neighbor(s) answered request %s", len(results), probe.request_id)
        return results

    def stop(self) -> None:
        self._running = False

    def close(self) -> None:
        self._transport.close()
        self._events.close()

    def _handle_packet(self, payload: bytes, source: Address) -> None:
        now = self._clock()
        try:
            message = decode_message(payload)
            if message.src_router_id == self.router_id:
                return
            if message.kind == MessageKind.CONTROL:
                self._handle_control(message, source, now)
                return
            outputs = self._protocol.on_message(self._context(now), message, source)
        except MessageDecodeError as exc:
            self._log.debug("drop invalid packet from %s:%s: %s", source[0], source[1], exc)
            return
        self._apply_outputs(outputs)

    def _handle_control(self, message: ControlMessage, source: Address, now: float) -> None:
        command = str(message.payload.get("command", ""))
        ok = True
        data: object = None
        engine = self._protocol
        if command == "status":
            data = {
                "router_id": self.router_id,
                "mode": self._cfg.mode,
                "enabled": bool(getattr(engine, "enabled", True)),
            }
        elif command in ("enable", "disable") and isinstance(engine, LinkStateProtocol):
            engine.enabled = command == "enable"
            self._log.info("protocol %sd by control request from %s:%s", command, source[0], source[1])
            data = {"enabled": engine.enabled}
        elif command == "routes":
            data = [route.to_dict() for route in self._route_table.snapshot()]
        elif command == "neighbors" and isinstance(engine, LinkStateProtocol):
            data = [record.to_dict() for record in engine.neighbors.snapshot()]
        else:
            ok = False
            data = f"unknown command {command!r} for mode {self._cfg.mode}; expected one of {list(CONTROL_COMMANDS)}"
            self._log.warning("control: %s", data)

        reply = engine.new_message(
            self._context(now),
            MessageKind.CONTROL_REPLY,
            {"command": command, "ok": ok, "data": data},
        )
        self._send(Destination.unicast(source), reply)

    def _apply_outputs(self, outputs: ProtocolOutputs) -> None:
        for destination, message in outputs.outbound:
            self._send(destination, message)
        for record in outputs.discovered:
            self._events.emit("neighbor_discovered", neighbor=record.to_dict())
            for listener in self._neighbor_listeners:
                listener(record)
        if outputs.routes is None:
            return
        if not self._route_table.replace(outputs.routes):
            return
        routes = self._route_table.snapshot()
        self._log.info("route table updated: %s", [(r.destination, r.next_hop, r.cost) for r in routes])
        self._events.emit("route_table_updated", routes=[r.to_dict() for r in routes])
        for listener in self._route_listeners:
            listener(routes)

    def _send(self, destination: Destination, message: ControlMessage) -> None:
        host, port = self._resolve(destination)
        try:
            self._transport.send(encode_message(message), host, port)
        except OSError as exc:
            self._log.warning("send %s to %s:%s failed: %s", message.kind.value, host, port, exc)

    def _resolve(self, destination: Destination) -> Tuple[str, int]:
        if destination.scope == "unicast" and destination.address is not None:
            return destination.address
        if destination.scope == "multicast":
            return self._cfg.multicast_group, self._cfg.bind_port
        return self._cfg.broadcast_address, self._cfg.bind_port

    def _context(self, now: float) -> ProtocolContext:
        return ProtocolContext(router_id=self.router_id, now=now)

    def _build_protocol(self, config: DaemonConfig) -> ProtocolEngine:
        limits = config.limits
        if config.mode == "router":
            return LinkStateProtocol(
                settings=config.link_state,
                advert=config.advert,
                neighbors=NeighborTable(max_neighbors=limits.max_neighbors),
                topology=TopologyDatabase(max_routers=limits.max_routers),
                lsa_cache=DedupCache(limits.dedup_capacity),
                request_cache=DedupCache(limits.dedup_capacity),
                initial_lsa_seq=int(time.time()),
            )
        if config.mode == "agent":
            return NeighborAgent(advert=config.advert, request_cache=DedupCache(limits.dedup_capacity))
        if config.mode == "probe":
            return DiscoveryProbe(
                response_window=config.response_window,
                advert=config.advert,
                max_neighbors=limits.max_neighbors,
            )
        raise ValueError(f"Unsupported mode: {config.mode}")

    def _install_signal_handlers(self) -> None:
        def _handle_signal(signum, _frame) -> None:  # type: ignore[no-untyped-def]
            self._log.info("received signal %s, stopping", signum)
            self.stop()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
