from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from lsrd.errors import ConfigError
from lsrd.protocols.discovery import LinkAdvert
from lsrd.protocols.link_state import LinkStateSettings

MODES = ("router", "agent", "probe")


@dataclass(frozen=True)
class LimitsConfig:
    max_neighbors: int = 8
    max_routers: int = 32
    dedup_capacity: int = 100


@dataclass(frozen=True)
class DaemonConfig:
    router_id: Optional[str]
    mode: str
    bind_address: str
    bind_port: int
    multicast_group: str
    multicast_ttl: int
    broadcast_address: str
    tick_interval: float
    response_window: float
    link_state: LinkStateSettings
    advert: LinkAdvert
    limits: LimitsConfig
    event_log: Optional[str] = None


def load_daemon_config(path: str | Path) -> DaemonConfig:
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"config {path} is not valid YAML: {exc}") from exc
    return parse_daemon_config(raw)


def parse_daemon_config(raw: Dict[str, Any]) -> DaemonConfig:
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")
    try:
        bind = dict(raw.get("bind", {}))
        multicast = dict(raw.get("multicast", {}))
        timers = dict(raw.get("timers", {}))
        limits_raw = dict(raw.get("limits", {}))
        protocol = dict(raw.get("protocol", {}))
        interface = dict(raw.get("interface", {}))

        mode = str(raw.get("mode", "router")).lower()
        link_state = LinkStateSettings(
            hello_interval=float(timers.get("hello_interval", 5.0)),
            lsa_interval=float(timers.get("lsa_interval", 10.0)),
            dead_interval=float(timers.get("dead_interval", 0.0)),
            hello_delivery=str(protocol.get("hello_delivery", "broadcast")).lower(),
            lsa_delivery=str(protocol.get("lsa_delivery", "multicast")).lower(),
            lsa_on_hello=bool(protocol.get("lsa_on_hello", True)),
            lsa_ttl=int(protocol.get("lsa_ttl", 8)),
            reference_bandwidth=int(protocol.get("reference_bandwidth", 1000)),
        )
        limits = LimitsConfig(
            max_neighbors=int(limits_raw.get("max_neighbors", 8)),
            max_routers=int(limits_raw.get("max_routers", 32)),
            dedup_capacity=int(limits_raw.get("dedup_capacity", 100)),
        )
        router_id = raw.get("router_id")
        cfg = DaemonConfig(
            router_id=str(router_id) if router_id is not None else None,
            mode=mode,
            bind_address=str(bind.get("address", "0.0.0.0")),
            bind_port=int(bind.get("port", 5000)),
            multicast_group=str(multicast.get("group", "224.0.0.5")),
            multicast_ttl=int(multicast.get("ttl", 1)),
            broadcast_address=str(raw.get("broadcast_address", "255.255.255.255")),
            tick_interval=float(timers.get("tick_interval", 1.0)),
            response_window=float(timers.get("response_window", 3.0)),
            link_state=link_state,
            advert=LinkAdvert(
                capacity=int(interface.get("capacity", 100)),
                status=int(interface.get("status", 1)),
            ),
            limits=limits,
            event_log=str(raw["event_log"]) if raw.get("event_log") else None,
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid config value: {exc}") from exc

    errors = validate_config(cfg)
    if errors:
        raise ConfigError("; ".join(errors))
    return cfg


def validate_config(cfg: DaemonConfig) -> list[str]:
    errors: list[str] = []
    if cfg.mode not in MODES:
        errors.append(f"mode must be one of {list(MODES)}, got {cfg.mode!r}")
    if not 0 <= cfg.bind_port <= 65535:
        errors.append(f"bind.port out of range: {cfg.bind_port}")
    if cfg.link_state.hello_delivery not in ("broadcast", "multicast"):
        errors.append("protocol.hello_delivery must be broadcast or multicast")
    if cfg.link_state.lsa_delivery not in ("multicast", "unicast"):
        errors.append("protocol.lsa_delivery must be multicast or unicast")
    for name in ("hello_interval", "lsa_interval"):
        if getattr(cfg.link_state, name) <= 0:
            errors.append(f"timers.{name} must be > 0")
    if cfg.link_state.dead_interval < 0:
        errors.append("timers.dead_interval must be >= 0 (0 disables liveness)")
    if cfg.tick_interval <= 0:
        errors.append("timers.tick_interval must be > 0")
    if cfg.response_window <= 0:
        errors.append("timers.response_window must be > 0")
    if cfg.link_state.reference_bandwidth <= 0:
        errors.append("protocol.reference_bandwidth must be > 0")
    if cfg.link_state.lsa_ttl < 1:
        errors.append("protocol.lsa_ttl must be >= 1")
    if cfg.advert.capacity <= 0:
        errors.append("interface.capacity must be > 0")
    for name in ("max_neighbors", "max_routers", "dedup_capacity"):
        if getattr(cfg.limits, name) < 1:
            errors.append(f"limits.{name} must be >= 1")
    return errors
